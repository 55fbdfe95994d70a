"""
surreal-undo: reversible data migrations for SurrealDB.

Every mutation a migration applies is journaled with the information needed
to invert it; ``surreal-undo undo <tag>`` puts the store back the way it was.
"""

from .config import MigrationConfig
from .connection_manager import StoreConnectionManager
from .exceptions import (
    ConcurrentModificationError,
    DocumentNotFoundError,
    InvalidFilterError,
    JournalCorruptError,
    JournalError,
    JournalPersistenceError,
    MissingJournalError,
    PlanError,
    StoreConnectionError,
    StoreError,
    UndoError,
)
from .log import configure_logging
from .migrations import (
    ActionKind,
    ActionRecord,
    ActionStatus,
    BackupSnapshotter,
    InsertDocument,
    JournalRecorder,
    JournalStore,
    MigrationPlan,
    MigrationRun,
    MigrationRunner,
    MutationExecutor,
    UndoEngine,
    UndoReport,
    UpdateDocuments,
    load_plan,
)
from .store import BaseDocumentStore, SurrealDocumentStore

__version__ = "0.1.0"

__all__ = [
    "MigrationConfig",
    "StoreConnectionManager",
    "configure_logging",
    "BaseDocumentStore",
    "SurrealDocumentStore",
    "ActionKind",
    "ActionStatus",
    "ActionRecord",
    "MigrationRun",
    "JournalRecorder",
    "JournalStore",
    "MutationExecutor",
    "MigrationRunner",
    "InsertDocument",
    "UpdateDocuments",
    "MigrationPlan",
    "load_plan",
    "UndoEngine",
    "UndoReport",
    "BackupSnapshotter",
    "UndoError",
    "StoreConnectionError",
    "JournalError",
    "JournalPersistenceError",
    "MissingJournalError",
    "JournalCorruptError",
    "PlanError",
    "StoreError",
    "DocumentNotFoundError",
    "ConcurrentModificationError",
    "InvalidFilterError",
]
