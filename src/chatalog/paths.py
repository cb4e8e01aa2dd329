"""Path management for the Chatalog store root."""

from pathlib import Path

from .config import ChatalogConfig


class StorePaths:
    """Manages paths within the Chatalog store root."""

    def __init__(self, home: Path, db_path: Path | None = None):
        """Initialize store paths from root directory.

        Args:
            home: Root directory of the Chatalog store
            db_path: SQLite database path (default: <home>/state/chatalog.sqlite)
        """
        self.root = home

        # Top-level directories
        self.state = home / "state"
        self.data = home / "data"
        self.system = home / "system"

        # Files
        self.db_file = db_path or self.state / "chatalog.sqlite"
        self.ledger_file = self.system / "ledger.jsonl"
        self.coverage_report = self.data / "chatworthy-import-coverage.json"
        self.file_status_report = self.data / "chatworthy-file-status.json"

    @classmethod
    def from_config(cls, config: ChatalogConfig) -> "StorePaths":
        """Create StorePaths from a ChatalogConfig."""
        paths = cls(config.home, config.db_path)
        paths.coverage_report = config.reports.coverage_path
        paths.file_status_report = config.reports.file_status_path
        return paths

    def get_all_directories(self) -> list[Path]:
        """Get list of all directories that should exist under the store root."""
        return [
            self.state,
            self.data,
            self.system,
            self.db_file.parent,
        ]
