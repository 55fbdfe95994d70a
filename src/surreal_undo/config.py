"""
Resolved configuration for a migration or undo run.

The CLI builds a ``MigrationConfig`` from its options and environment
variables; the engine only reads it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

DEFAULT_JOURNAL_DIR = "migrations"
DEFAULT_LOG_FILE = "migration.log"


@dataclass(frozen=True)
class MigrationConfig:
    """
    Immutable run configuration.

    Attributes:
        url: SurrealDB URL.
        namespace: Namespace holding the target collections.
        database: Database holding the target collections.
        user: Username for root authentication.
        password: Password for root authentication.
        protocol: Wire protocol ("cbor" or "json").
        dry_run: Record intended effects without mutating the store.
        journal_dir: Directory holding one journal file per run.
        log_file: Log file path, or None for console-only logging.
    """

    url: str = "http://localhost:8000"
    namespace: str = "test"
    database: str = "test"
    user: str = "root"
    password: str = "root"
    protocol: Literal["json", "cbor"] = "cbor"
    dry_run: bool = False
    journal_dir: Path = field(default_factory=lambda: Path(DEFAULT_JOURNAL_DIR))
    log_file: Path | None = None

    def __post_init__(self) -> None:
        # Accept plain strings from callers; the dataclass is frozen.
        object.__setattr__(self, "journal_dir", Path(self.journal_dir))
        if self.log_file is not None:
            object.__setattr__(self, "log_file", Path(self.log_file))

    def with_dry_run(self, dry_run: bool) -> MigrationConfig:
        """Return a copy with the dry-run flag replaced."""
        return replace(self, dry_run=dry_run)


__all__ = ["MigrationConfig", "DEFAULT_JOURNAL_DIR", "DEFAULT_LOG_FILE"]
