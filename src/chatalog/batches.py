"""Import batch recording and administration."""

import logging
from typing import Optional

from .models.store import ImportBatch, Note
from .store.repositories import ImportBatchRepository, NoteRepository

logger = logging.getLogger(__name__)


class BatchNotFoundError(LookupError):
    """No import batch with the given id."""

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__(f"Import batch not found: {batch_id}")


class ImportBatchRecorder:
    """Groups the notes of one apply under a shared ImportBatch record.

    Batch records are audit history only: deleting one leaves its notes, and
    their ``import_batch_id`` stamps, untouched.
    """

    def __init__(self, batches: ImportBatchRepository, notes: NoteRepository):
        self.batches = batches
        self.notes = notes

    def record(self, note_ids: list[str], source_type: Optional[str]) -> Optional[ImportBatch]:
        """Create a batch for ``note_ids`` and stamp each note with its id.

        Returns None without writing anything when no notes were created.
        """
        if not note_ids:
            return None

        count = len(note_ids)
        batch = self.batches.create(imported_count=count, remaining_count=count, source_type=source_type)
        stamped = self.notes.set_import_batch(note_ids, batch.id)
        if stamped != count:
            logger.warning(f"Batch {batch.id}: stamped {stamped} of {count} note(s)")
        logger.info(f"Recorded import batch {batch.id} with {count} note(s) [{source_type}]")
        return batch

    def list_batches(self) -> list[ImportBatch]:
        """All batches, newest first."""
        return self.batches.list_all()

    def batch_notes(self, batch_id: str) -> list[Note]:
        """Notes stamped with ``batch_id``, whether or not the record still exists."""
        return self.notes.list_by_batch(batch_id)

    def delete_batch(self, batch_id: str) -> None:
        if not self.batches.delete(batch_id):
            raise BatchNotFoundError(batch_id)
        logger.info(f"Deleted import batch record {batch_id}")
