"""
Backup snapshots (legacy strategy).

Before a bulk update, the matched documents are copied verbatim into a side
collection ``_backup_<collection>_<tag>`` under their original record keys.
Restore upserts them back into the source collection.

Inserts made by a snapshot-strategy run are undone by time window: every
document whose creation timestamp is at or after the instant encoded in the
tag is deleted. This is an approximation, not an exact inverse. It also
removes documents another writer created in the same window, and it depends
on clock agreement between this process and whatever stamped the documents.
Identifier-based undo (``UndoEngine``) does not have these limitations.

Side collections are never removed automatically.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..sdk import RecordId
from ..store import BaseDocumentStore, Document, parse_identifier
from .executor import PER_ACTION_ERRORS, describe_error
from .tags import parse_tag

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "_backup_"


def backup_collection_name(collection: str, tag: str) -> str:
    return f"{BACKUP_PREFIX}{collection}_{tag}"


def source_collection_name(backup: str, tag: str) -> str | None:
    """Source collection of a backup collection for ``tag``, or None if it is not one."""
    suffix = f"_{tag}"
    if backup.startswith(BACKUP_PREFIX) and backup.endswith(suffix):
        source = backup[len(BACKUP_PREFIX) : -len(suffix)]
        return source or None
    return None


@dataclass
class RestoreReport:
    """Per-collection counts of a snapshot restore."""

    tag: str
    deleted: dict[str, int] = field(default_factory=dict)
    restored: dict[str, int] = field(default_factory=dict)
    failed: int = 0

    def summary(self) -> str:
        parts = [f"{name}: -{count}" for name, count in self.deleted.items()]
        parts += [f"{name}: ~{count}" for name, count in self.restored.items()]
        detail = ", ".join(parts) if parts else "nothing to restore"
        return f"Restore of {self.tag}: {detail} ({self.failed} failed)"


class BackupSnapshotter:
    """
    Whole-set copy before a bulk update, and the matching coarse restore.
    """

    def __init__(self, store: BaseDocumentStore):
        self.store = store

    async def snapshot(self, collection: str, filter: Document | None, tag: str) -> int:
        """
        Copy every document matching ``filter`` into the run's side collection.

        Returns:
            Number of documents copied
        """
        backup = backup_collection_name(collection, tag)
        documents = await self.store.find(collection, filter)
        for document in documents:
            key = parse_identifier(document["id"]).id
            await self.store.insert(backup, {**document, "id": key})

        logger.info(f"Backed up {len(documents)} document(s) from '{collection}' to '{backup}'")
        return len(documents)

    async def restore(
        self,
        tag: str,
        insert_collections: Iterable[str] = (),
        update_collections: Iterable[str] | None = None,
        timestamp_field: str = "createdAt",
    ) -> RestoreReport:
        """
        Undo a snapshot-strategy run.

        Args:
            tag: Run tag; must encode a timestamp
            insert_collections: Collections the run inserted into
            update_collections: Collections the run bulk-updated; discovered
                from existing side collections when None
            timestamp_field: Creation timestamp field of inserted documents

        Raises:
            ValueError: If the tag does not encode a timestamp
        """
        since = parse_tag(tag)
        report = RestoreReport(tag=tag)

        for collection in insert_collections:
            deleted = await self.store.delete_since(collection, timestamp_field, since)
            report.deleted[collection] = deleted
            logger.info(f"Deleted {deleted} document(s) created since {since.isoformat()} from '{collection}'")

        if update_collections is None:
            update_collections = [
                source
                for name in await self.store.collections()
                if (source := source_collection_name(name, tag)) is not None
            ]

        for collection in update_collections:
            report.restored[collection] = await self._restore_collection(collection, tag, report)

        return report

    async def _restore_collection(self, collection: str, tag: str, report: RestoreReport) -> int:
        backup = backup_collection_name(collection, tag)
        restored = 0
        for document in await self.store.find(backup):
            target = str(RecordId(table=collection, id=parse_identifier(document["id"]).id))
            try:
                await self.store.upsert(target, document)
            except PER_ACTION_ERRORS as e:
                report.failed += 1
                logger.error(f"Restore failed for {target} in '{collection}': {describe_error(e)}")
                continue
            restored += 1
        logger.info(f"Restored {restored} document(s) into '{collection}' from '{backup}'")
        return restored


__all__ = ["BackupSnapshotter", "RestoreReport", "backup_collection_name", "source_collection_name"]
