"""Pydantic models for ledger events."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

LedgerEventType = Literal[
    "IMPORT_PREVIEWED",
    "IMPORT_APPLIED",
    "IMPORT_BATCH_DELETED",
    "COVERAGE_REPORT_WRITTEN",
    "FILE_AUDIT_WRITTEN",
]


class LedgerEvent(BaseModel):
    """Append-only ledger event record.

    Written as JSONL to <home>/system/ledger.jsonl.
    Never mutate or delete; only append.
    """

    event_id: str = Field(description="Unique event identifier (uuid4)")
    run_id: str = Field(description="Run/session identifier (uuid4)")
    ts: datetime = Field(description="Event timestamp (ISO8601 UTC)")
    event_type: LedgerEventType = Field(description="Event type")
    import_batch_id: str | None = Field(default=None, description="Related import batch ID if applicable")
    payload: dict = Field(default_factory=dict, description="Event-specific data")

    model_config = {"frozen": True}
