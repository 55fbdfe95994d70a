"""
Mutation executor.

Applies single inserts and per-document updates, or simulates them in
dry-run mode, and returns an ActionRecord for every affected document.
Failures of a single document are turned into ``error`` records instead of
exceptions so the run moves on to the next document.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

from ..exceptions import JournalPersistenceError, StoreError
from ..sdk import RecordId, SurrealDBError
from ..store import BaseDocumentStore, Document, record_key
from .records import ActionKind, ActionRecord, ActionStatus, encode_value

logger = logging.getLogger(__name__)

PER_ACTION_ERRORS = (SurrealDBError, StoreError)


def describe_error(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


def declared_identifier(collection: str, document: Document) -> str | None:
    """Identifier a document asks for through its own ``id``, if any."""
    raw = document.get("id")
    if raw is None:
        return None
    try:
        return str(RecordId(table=collection, id=record_key(raw)))
    except StoreError:
        return None


def ensure_journalable(collection: str, payload: Document, what: str) -> None:
    """
    Check that ``payload`` can be written to the journal.

    Called before the store is touched: a mutation whose record cannot be
    persisted could never be undone.

    Raises:
        JournalPersistenceError: If a value has no journal encoding
    """
    try:
        encode_value(payload)
    except TypeError as e:
        raise JournalPersistenceError(f"Cannot journal {what} for '{collection}': {e}") from e


class MutationExecutor:
    """
    Executes planned mutations against a store.

    Updates are applied one document at a time, by identifier, so each
    document's prior content is captured on its own and can be restored
    without touching its siblings.
    """

    def __init__(self, store: BaseDocumentStore, dry_run: bool = False, guard_updates: bool = True):
        """
        Args:
            store: Target store
            dry_run: Simulate mutations without writing
            guard_updates: Apply each per-document update only while the
                document still matches the filter it was selected by
        """
        self.store = store
        self.dry_run = dry_run
        self.guard_updates = guard_updates

    async def insert(self, collection: str, document: Document) -> ActionRecord:
        """
        Insert one document.

        Exactly one store write in normal mode, none in dry-run.

        Raises:
            JournalPersistenceError: If the document cannot be journaled;
                nothing is written
        """
        ensure_journalable(collection, document, "inserted document")
        if self.dry_run:
            return ActionRecord(
                collection=collection,
                kind=ActionKind.INSERT,
                status=ActionStatus.DRY_RUN,
                document=document,
            )

        try:
            created = await self.store.insert(collection, document)
        except PER_ACTION_ERRORS as e:
            return ActionRecord(
                collection=collection,
                kind=ActionKind.INSERT,
                status=ActionStatus.ERROR,
                identifier=declared_identifier(collection, document),
                document=document,
                error=describe_error(e),
            )

        return ActionRecord(
            collection=collection,
            kind=ActionKind.INSERT,
            status=ActionStatus.SUCCESS,
            identifier=created["id"],
            document=document,
        )

    async def update(
        self,
        collection: str,
        filter: Document | None,
        instruction: Document,
    ) -> AsyncIterator[ActionRecord]:
        """
        Update every document matching ``filter``, one at a time.

        The filter is resolved once, before any document is touched. Each
        record is yielded before the next document is mutated so the caller
        can persist it first.

        Raises:
            SurrealDBError: If the filter itself cannot be resolved
            JournalPersistenceError: If the instruction or a matched
                document cannot be journaled; that document is not updated
        """
        ensure_journalable(collection, instruction, "update instruction")
        matched = await self.store.find(collection, filter)
        logger.debug(f"Matched {len(matched)} document(s) in '{collection}'")

        for document in matched:
            yield await self._update_document(collection, document, filter, instruction)

    async def _update_document(
        self,
        collection: str,
        document: Document,
        filter: Document | None,
        instruction: Document,
    ) -> ActionRecord:
        identifier = document["id"]
        common: dict[str, Any] = {
            "collection": collection,
            "kind": ActionKind.UPDATE,
            "identifier": identifier,
            "update": instruction,
        }

        if self.dry_run:
            return ActionRecord(status=ActionStatus.DRY_RUN, **common)

        ensure_journalable(collection, document, f"previous state of {identifier}")
        guard = filter if self.guard_updates and filter else None
        try:
            await self.store.update_one(identifier, instruction, guard=guard)
        except PER_ACTION_ERRORS as e:
            return ActionRecord(status=ActionStatus.ERROR, error=describe_error(e), **common)

        return ActionRecord(status=ActionStatus.SUCCESS, previous=document, **common)


__all__ = ["MutationExecutor", "describe_error", "declared_identifier", "ensure_journalable", "PER_ACTION_ERRORS"]
