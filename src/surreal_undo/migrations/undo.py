"""
Undo engine.

Replays a run's journal and inverts every successful action:

- insert -> delete the inserted document (already absent counts as done)
- update -> replace the document with its full pre-update content

Dry-run and failed actions never touched the store and are skipped. A
failing inversion is logged and counted; the pass always continues, and
running it twice is safe. The journal is only read, never rewritten.
"""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from ..exceptions import DocumentNotFoundError
from ..store import BaseDocumentStore, Document, normalize_identifier
from .executor import PER_ACTION_ERRORS, describe_error
from .journal import JournalStore
from .records import ActionKind, ActionRecord, MigrationRun

logger = logging.getLogger(__name__)


class UndoOutcome(StrEnum):
    REVERTED = "reverted"
    ABSENT = "absent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class UndoReport:
    """Tally of one undo pass."""

    tag: str
    identifier: str | None = None
    outcomes: list[tuple[ActionRecord, UndoOutcome]] = field(default_factory=list)

    def count(self, outcome: UndoOutcome) -> int:
        return sum(1 for _, o in self.outcomes if o == outcome)

    @property
    def reverted(self) -> int:
        return self.count(UndoOutcome.REVERTED)

    @property
    def absent(self) -> int:
        return self.count(UndoOutcome.ABSENT)

    @property
    def skipped(self) -> int:
        return self.count(UndoOutcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(UndoOutcome.FAILED)

    def summary(self) -> str:
        scope = f" (_id={self.identifier})" if self.identifier else ""
        return (
            f"Undo of {self.tag}{scope}: {self.reverted} reverted, {self.absent} already absent, "
            f"{self.skipped} skipped, {self.failed} failed"
        )


class UndoEngine:
    """
    Inverts the recorded actions of a run.
    """

    def __init__(self, store: BaseDocumentStore, journal_store: JournalStore | None = None):
        self.store = store
        self.journal_store = journal_store

    async def undo(self, tag: str, identifier: str | None = None, reverse: bool = False) -> UndoReport:
        """
        Load the journal for ``tag`` and undo it.

        Raises:
            MissingJournalError: If no journal exists for the tag
        """
        if self.journal_store is None:
            raise ValueError("UndoEngine.undo() needs a JournalStore; use undo_run() with a loaded run")
        run = self.journal_store.load(tag)
        return await self.undo_run(run, identifier=identifier, reverse=reverse)

    @staticmethod
    def select(run: MigrationRun, identifier: str | None = None) -> list[ActionRecord]:
        """Actions to replay: all of them, or only those for one document."""
        if identifier is None:
            return list(run.actions)
        try:
            wanted = normalize_identifier(identifier)
        except ValueError:
            wanted = identifier
        selected = [a for a in run.actions if a.identifier == wanted]
        if not selected:
            logger.warning(
                f"No action in run {run.tag} targets _id={identifier}; "
                "identifiers are recorded as table:key (e.g. users:abc123)"
            )
        return selected

    async def undo_run(self, run: MigrationRun, identifier: str | None = None, reverse: bool = False) -> UndoReport:
        """
        Undo an already loaded run.

        Args:
            run: The run to undo
            identifier: Restrict the pass to actions on this document
            reverse: Replay newest first instead of in recorded order. Needed
                when one document was updated more than once in the run.
        """
        candidates = self.select(run, identifier)
        if reverse:
            candidates.reverse()

        scope = f" (filtered by _id={identifier})" if identifier else ""
        logger.info(f"Starting undo for tag {run.tag}{scope}: {len(candidates)} action(s)")

        report = UndoReport(tag=run.tag, identifier=identifier)
        for action in candidates:
            report.outcomes.append((action, await self.invert(action)))

        logger.info(report.summary())
        return report

    async def invert(self, action: ActionRecord) -> UndoOutcome:
        """Apply the inverse of one action."""
        identifier = action.identifier
        if not action.is_reversible or identifier is None:
            logger.debug(f"Nothing to undo for {action.describe()}")
            return UndoOutcome.SKIPPED

        try:
            if action.kind == ActionKind.INSERT:
                return await self._undo_insert(action.collection, identifier)
            if action.previous is None:
                logger.debug(f"No previous state recorded for {action.describe()}")
                return UndoOutcome.SKIPPED
            return await self._undo_update(action.collection, identifier, action.previous)
        except PER_ACTION_ERRORS as e:
            logger.error(f"Undo failed for _id={identifier} in '{action.collection}': {describe_error(e)}")
            return UndoOutcome.FAILED

    async def _undo_insert(self, collection: str, identifier: str) -> UndoOutcome:
        if await self.store.delete(identifier):
            logger.info(f"Deleted inserted doc _id={identifier} from '{collection}'")
            return UndoOutcome.REVERTED
        logger.info(f"Inserted doc _id={identifier} already absent from '{collection}'")
        return UndoOutcome.ABSENT

    async def _undo_update(self, collection: str, identifier: str, previous: Document) -> UndoOutcome:
        try:
            await self.store.replace(identifier, previous)
        except DocumentNotFoundError:
            logger.warning(f"Cannot restore _id={identifier} in '{collection}': document no longer exists")
            return UndoOutcome.ABSENT
        logger.info(f"Restored doc _id={identifier} in '{collection}'")
        return UndoOutcome.REVERTED


__all__ = ["UndoEngine", "UndoReport", "UndoOutcome"]
