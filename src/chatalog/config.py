"""Configuration management for Chatalog."""

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent

        # Stop if we reach filesystem root
        if parent_dir == current_dir:
            return start_dir

        current_dir = parent_dir


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Load repo config data from .chatalog/config.toml if it exists."""
    config_file = repo_root / ".chatalog" / "config.toml"

    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        # If config file is malformed, ignore it
        return None


def _nested_get(data: Optional[dict[str, Any]], path: list[str]) -> Any:
    cur: Any = data or {}
    for key in path:
        if not isinstance(cur, dict) or key not in cur:
            return None
        cur = cur[key]
    return cur


def _pick(cli_value: Any, repo_value: Any, env_name: str, default: Any) -> Any:
    """Resolve a setting: CLI > repo config > environment > default."""
    if cli_value is not None:
        return cli_value
    if repo_value is not None:
        return repo_value
    env_value = os.environ.get(env_name)
    if env_value is not None and env_value.strip():
        return env_value
    return default


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid config: {name} must be an integer, got {value!r}")


def parse_store_url(value: str) -> Path:
    """Turn a store connection string into a SQLite database path.

    Accepts a bare filesystem path or a ``sqlite:///path`` URL.
    """
    value = value.strip()
    if value.startswith("sqlite:///"):
        # sqlite:////abs/path keeps its leading slash
        value = value[len("sqlite:///"):]
    elif "://" in value:
        raise ValueError(f"Unsupported store connection string: {value}")
    return Path(value).expanduser()


class ImportConfig(BaseModel):
    """Configuration for the preview/apply import workflow."""

    slug_max_length: int = Field(default=80)
    slug_max_retries: int = Field(default=3)
    source_type: str = Field(default="chatworthy")


class ReportsConfig(BaseModel):
    """Output locations for offline report artifacts."""

    coverage_path: Path
    file_status_path: Path


class ChatalogConfig(BaseModel):
    """Configuration for the Chatalog store and import operations."""

    home: Path = Field(default_factory=lambda: Path("./chatalog_data"))
    db_path: Path
    reports: ReportsConfig
    imports: ImportConfig = Field(default_factory=ImportConfig)

    model_config = {"frozen": False}

    @classmethod
    def for_home(cls, home: Path, db_path: Optional[Path] = None) -> "ChatalogConfig":
        """Build a config rooted at ``home`` with default derived paths."""
        return cls(
            home=home,
            db_path=db_path or home / "state" / "chatalog.sqlite",
            reports=ReportsConfig(
                coverage_path=home / "data" / "chatworthy-import-coverage.json",
                file_status_path=home / "data" / "chatworthy-file-status.json",
            ),
        )

    @classmethod
    def from_env(
        cls,
        cli_home: Optional[str] = None,
        cli_db: Optional[str] = None,
    ) -> "ChatalogConfig":
        """Load configuration with precedence CLI > .chatalog/config.toml > env > defaults.

        Args:
            cli_home: Store root from the CLI --home option
            cli_db: Store connection string from the CLI --db option
        """
        data = _load_repo_config_data(_find_repo_root(Path.cwd()))

        home = Path(_pick(cli_home, _nested_get(data, ["home"]), "CHATALOG_HOME", "./chatalog_data"))
        home = home.expanduser().resolve()

        db_value = _pick(cli_db, _nested_get(data, ["store", "sqlite_path"]), "CHATALOG_DB", None)
        db_path = parse_store_url(str(db_value)) if db_value else home / "state" / "chatalog.sqlite"
        if not db_path.is_absolute():
            db_path = (home / db_path).resolve()

        coverage_path = Path(
            _pick(
                None,
                _nested_get(data, ["reports", "coverage_path"]),
                "CHATALOG_COVERAGE_REPORT",
                home / "data" / "chatworthy-import-coverage.json",
            )
        )
        file_status_path = Path(
            _pick(
                None,
                _nested_get(data, ["reports", "file_status_path"]),
                "CHATALOG_FILE_STATUS_REPORT",
                home / "data" / "chatworthy-file-status.json",
            )
        )
        if not coverage_path.is_absolute():
            coverage_path = home / coverage_path
        if not file_status_path.is_absolute():
            file_status_path = home / file_status_path

        imports = ImportConfig(
            slug_max_length=_as_int(
                "slug_max_length",
                _pick(None, _nested_get(data, ["import", "slug_max_length"]), "CHATALOG_SLUG_MAX_LENGTH", 80),
            ),
            slug_max_retries=_as_int(
                "slug_max_retries",
                _pick(None, _nested_get(data, ["import", "slug_max_retries"]), "CHATALOG_SLUG_MAX_RETRIES", 3),
            ),
            source_type=str(
                _pick(None, _nested_get(data, ["import", "source_type"]), "CHATALOG_SOURCE_TYPE", "chatworthy")
            ),
        )
        if imports.slug_max_length < 1:
            raise ValueError("Invalid config: slug_max_length must be at least 1")
        if imports.slug_max_retries < 0:
            raise ValueError("Invalid config: slug_max_retries must not be negative")

        return cls(
            home=home,
            db_path=db_path,
            reports=ReportsConfig(coverage_path=coverage_path, file_status_path=file_status_path),
            imports=imports,
        )
