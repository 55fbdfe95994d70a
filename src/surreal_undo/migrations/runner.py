"""
Migration runner.

Sequences a plan: each operation goes through the executor, every outcome
is logged and durably journaled before the next document is mutated.
Operations run strictly in order; nothing is retried.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ..config import MigrationConfig
from ..store import BaseDocumentStore
from .executor import MutationExecutor
from .journal import JournalRecorder
from .plan import InsertDocument, MigrationPlan, Operation, UpdateDocuments
from .records import ActionKind, ActionRecord, ActionStatus, MigrationRun
from .snapshot import BackupSnapshotter, backup_collection_name

logger = logging.getLogger(__name__)


def log_action(action: ActionRecord) -> None:
    """Log one outcome as a single line."""
    collection = action.collection
    if action.status == ActionStatus.DRY_RUN:
        if action.kind == ActionKind.INSERT:
            logger.info(f"[DRY RUN] Would insert into '{collection}': {action.document}")
        else:
            logger.info(f"[DRY RUN] Would update document {action.identifier} in '{collection}'")
    elif action.status == ActionStatus.SUCCESS:
        if action.kind == ActionKind.INSERT:
            logger.info(f"Inserted {action.identifier} into '{collection}'")
        else:
            logger.info(f"Updated document {action.identifier} in '{collection}'")
    elif action.kind == ActionKind.INSERT:
        logger.error(f"Insert failed in '{collection}': {action.error}")
    else:
        logger.error(f"Update failed for _id={action.identifier} in '{collection}': {action.error}")


@dataclass
class RunSummary:
    """Outcome counts of a finished run."""

    tag: str
    dry_run: bool
    journal_path: Path
    succeeded: int = 0
    failed: int = 0
    previewed: int = 0
    snapshots: dict[str, int] = field(default_factory=dict)

    def add(self, action: ActionRecord) -> None:
        if action.status == ActionStatus.SUCCESS:
            self.succeeded += 1
        elif action.status == ActionStatus.ERROR:
            self.failed += 1
        else:
            self.previewed += 1

    def summary(self) -> str:
        mode = " (dry run)" if self.dry_run else ""
        return (
            f"Migration {self.tag}{mode}: {self.succeeded} succeeded, {self.failed} failed, "
            f"{self.previewed} previewed"
        )


class MigrationRunner:
    """
    Runs a plan against a store and journals every outcome.
    """

    def __init__(self, store: BaseDocumentStore, config: MigrationConfig):
        self.store = store
        self.config = config
        self.executor = MutationExecutor(store, dry_run=config.dry_run)
        self.snapshotter = BackupSnapshotter(store)

    async def run(self, plan: MigrationPlan, now: datetime | None = None) -> RunSummary:
        """
        Apply ``plan``.

        Raises:
            JournalPersistenceError: If the journal cannot be created or written;
                the run stops at that point
            SurrealDBError: If a filter cannot be resolved against the store
        """
        run = MigrationRun.start(now)
        recorder = JournalRecorder(self.config.journal_dir, run)
        summary = RunSummary(tag=run.tag, dry_run=self.config.dry_run, journal_path=recorder.path)

        logger.info(f"Starting migration {plan.name} (DRY_RUN={self.config.dry_run})")
        logger.info(f"Tag: {run.tag}")

        with recorder:
            for operation in plan.operations:
                await self._apply(operation, run, recorder, summary)

        logger.info(f"Migration complete. Journal: {recorder.path}")
        return summary

    def _commit(self, action: ActionRecord, recorder: JournalRecorder, summary: RunSummary) -> None:
        recorder.record(action)
        log_action(action)
        summary.add(action)

    async def _apply(
        self,
        operation: Operation,
        run: MigrationRun,
        recorder: JournalRecorder,
        summary: RunSummary,
    ) -> None:
        logger.debug(f"Applying: {operation.describe()}")

        if isinstance(operation, InsertDocument):
            action = await self.executor.insert(operation.collection, operation.build(run.created_at))
            self._commit(action, recorder, summary)
            return

        if not isinstance(operation, UpdateDocuments):
            raise TypeError(f"Unsupported operation: {type(operation).__name__}")

        instruction = operation.build(run.created_at)
        if operation.strategy == "snapshot" and not self.config.dry_run:
            await self._bulk_update(operation, instruction, run.tag, summary)
            return

        async for action in self.executor.update(operation.collection, operation.filter, instruction):
            self._commit(action, recorder, summary)

    async def _bulk_update(
        self,
        operation: UpdateDocuments,
        instruction: dict,
        tag: str,
        summary: RunSummary,
    ) -> None:
        copied = await self.snapshotter.snapshot(operation.collection, operation.filter, tag)
        summary.snapshots[backup_collection_name(operation.collection, tag)] = copied
        updated = await self.store.update_where(operation.collection, operation.filter, instruction)
        logger.info(f"Bulk updated {len(updated)} document(s) in '{operation.collection}'")


__all__ = ["MigrationRunner", "RunSummary", "log_action"]
