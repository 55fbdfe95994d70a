"""
Reversible migrations.

Every mutation a run applies is journaled with what is needed to invert it,
so a later undo pass can restore prior state without a full backup:

    # Apply a plan, journaling each outcome
    summary = await MigrationRunner(store, config).run(plan)

    # Invert the run, or one document of it
    report = await UndoEngine(store, JournalStore(config.journal_dir)).undo(summary.tag)
"""

from .executor import MutationExecutor
from .journal import JournalRecorder, JournalStore
from .plan import InsertDocument, MigrationPlan, Operation, UpdateDocuments, load_plan
from .records import ActionKind, ActionRecord, ActionStatus, MigrationRun
from .runner import MigrationRunner, RunSummary
from .snapshot import BackupSnapshotter, RestoreReport, backup_collection_name
from .tags import make_tag, parse_tag
from .undo import UndoEngine, UndoOutcome, UndoReport

__all__ = [
    # Journal model
    "ActionKind",
    "ActionStatus",
    "ActionRecord",
    "MigrationRun",
    "make_tag",
    "parse_tag",
    # Journal persistence
    "JournalRecorder",
    "JournalStore",
    # Execution
    "MutationExecutor",
    "MigrationRunner",
    "RunSummary",
    # Plans
    "Operation",
    "InsertDocument",
    "UpdateDocuments",
    "MigrationPlan",
    "load_plan",
    # Undo
    "UndoEngine",
    "UndoOutcome",
    "UndoReport",
    # Legacy snapshots
    "BackupSnapshotter",
    "RestoreReport",
    "backup_collection_name",
]
