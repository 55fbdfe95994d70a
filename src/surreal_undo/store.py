"""
Collection-scoped document store.

``BaseDocumentStore`` is the handle the executor, snapshotter and undo engine
work against. Collections are SurrealDB tables and identifiers are record ids
rendered as ``table:key`` strings. Filters are equality maps of field paths to
values; update instructions are merge documents. Neither is interpreted by
the engine, only passed through here.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from .exceptions import ConcurrentModificationError, DocumentNotFoundError, InvalidFilterError
from .sdk import HTTPConnection, RecordId

logger = logging.getLogger(__name__)

Document = dict[str, Any]

_FIELD_PATH = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


def parse_identifier(identifier: str) -> RecordId:
    """Split a ``table:key`` identifier, raising InvalidFilterError when malformed."""
    try:
        return RecordId.parse(str(identifier))
    except ValueError as e:
        raise InvalidFilterError(str(e), identifier=str(identifier)) from e


def record_key(raw: Any) -> Any:
    """Key part of a declared ``id``: a RecordId, a ``table:key`` string or a bare key."""
    if isinstance(raw, RecordId):
        return raw.id
    if isinstance(raw, str) and ":" in raw:
        return parse_identifier(raw).id
    return raw


def normalize_identifier(value: Any) -> str | None:
    """Render a record id value (RecordId or string) in canonical ``table:key`` form."""
    if value is None:
        return None
    if isinstance(value, RecordId):
        return str(value)
    text = str(value)
    if ":" in text:
        return str(RecordId.parse(text))
    return text


def quote_field(path: str) -> str:
    """Validate a field path and escape each segment for SurrealQL."""
    if not _FIELD_PATH.match(path):
        raise InvalidFilterError(f"Invalid field name: {path!r}")
    return ".".join(f"`{part}`" for part in path.split("."))


def build_where(filter: Document | None, prefix: str = "f") -> tuple[str, dict[str, Any]]:
    """
    Turn an equality filter into a WHERE clause with bound variables.

    Returns:
        ``(" WHERE a = $f0 AND ...", {"f0": ...})``, or ``("", {})`` for no filter
    """
    if not filter:
        return "", {}
    clauses: list[str] = []
    variables: dict[str, Any] = {}
    for i, (path, value) in enumerate(filter.items()):
        name = f"{prefix}{i}"
        clauses.append(f"{quote_field(path)} = ${name}")
        variables[name] = value
    return " WHERE " + " AND ".join(clauses), variables


class BaseDocumentStore(ABC):
    """
    Abstract collection-scoped store.

    Every method is a single, immediately committed operation. Returned
    documents carry their identifier under ``id`` in ``table:key`` form.
    """

    @abstractmethod
    async def find(self, collection: str, filter: Document | None = None) -> list[Document]:
        """Return all documents of ``collection`` matching ``filter``."""
        ...

    @abstractmethod
    async def get(self, identifier: str) -> Document | None:
        """Return the document with ``identifier``, or None."""
        ...

    @abstractmethod
    async def insert(self, collection: str, document: Document) -> Document:
        """
        Create a document and return it with its assigned identifier.

        A document carrying ``id`` (a bare key or ``table:key``) is created
        under that key.
        """
        ...

    @abstractmethod
    async def update_one(self, identifier: str, patch: Document, guard: Document | None = None) -> Document:
        """
        Merge ``patch`` into one document.

        Args:
            identifier: Target document
            patch: Merge document
            guard: Optional equality filter the document must still satisfy

        Raises:
            DocumentNotFoundError: If the document does not exist
            ConcurrentModificationError: If the document no longer satisfies ``guard``
        """
        ...

    @abstractmethod
    async def update_where(self, collection: str, filter: Document | None, patch: Document) -> list[Document]:
        """Merge ``patch`` into every matching document in one statement."""
        ...

    @abstractmethod
    async def replace(self, identifier: str, document: Document) -> Document:
        """
        Overwrite an existing document with ``document`` in full.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        ...

    @abstractmethod
    async def upsert(self, identifier: str, document: Document) -> Document:
        """Overwrite the document, creating it when absent."""
        ...

    @abstractmethod
    async def delete(self, identifier: str) -> bool:
        """Delete one document. Returns False when it was already absent."""
        ...

    @abstractmethod
    async def delete_since(self, collection: str, field: str, since: datetime) -> int:
        """Delete documents whose ``field`` is at or after ``since``; return how many."""
        ...

    @abstractmethod
    async def count(self, collection: str) -> int:
        ...

    @abstractmethod
    async def collections(self) -> list[str]:
        """Names of all collections in the database."""
        ...

    async def insert_many(self, collection: str, documents: list[Document]) -> list[Document]:
        """Insert documents one at a time, in order."""
        return [await self.insert(collection, doc) for doc in documents]


def _content(document: Document) -> Document:
    """Document body without its identifier."""
    return {k: v for k, v in document.items() if k != "id"}


class SurrealDocumentStore(BaseDocumentStore):
    """
    Document store backed by a SurrealDB connection.

    Each method issues one parameterised SurrealQL statement; table names and
    record keys are bound through ``type::table`` and ``type::thing``.
    """

    def __init__(self, client: HTTPConnection):
        self.client = client

    async def _records(self, sql: str, variables: dict[str, Any]) -> list[Document]:
        logger.debug(f"Executing: {sql[:100]}")
        response = await self.client.query(sql, variables)
        result = response.first_result
        records = result.records if result else []
        return [self._normalize(r) for r in records]

    @staticmethod
    def _normalize(record: Document) -> Document:
        if "id" in record:
            record = {**record, "id": normalize_identifier(record["id"])}
        return record

    @staticmethod
    def _thing_vars(identifier: str) -> dict[str, Any]:
        ref = parse_identifier(identifier)
        return {"tb": ref.table, "key": ref.id}

    async def find(self, collection: str, filter: Document | None = None) -> list[Document]:
        where, variables = build_where(filter)
        return await self._records(f"SELECT * FROM type::table($tb){where};", {"tb": collection, **variables})

    async def get(self, identifier: str) -> Document | None:
        records = await self._records("SELECT * FROM type::thing($tb, $key);", self._thing_vars(identifier))
        return records[0] if records else None

    async def insert(self, collection: str, document: Document) -> Document:
        variables: dict[str, Any] = {"tb": collection, "doc": _content(document)}
        if document.get("id") is not None:
            variables["key"] = record_key(document["id"])
            sql = "CREATE type::thing($tb, $key) CONTENT $doc RETURN AFTER;"
        else:
            sql = "CREATE type::table($tb) CONTENT $doc RETURN AFTER;"
        records = await self._records(sql, variables)
        return records[0]

    async def update_one(self, identifier: str, patch: Document, guard: Document | None = None) -> Document:
        where, variables = build_where(guard, prefix="g")
        records = await self._records(
            f"UPDATE type::thing($tb, $key) MERGE $patch{where} RETURN AFTER;",
            {**self._thing_vars(identifier), "patch": patch, **variables},
        )
        if records:
            return records[0]
        if await self.get(identifier) is None:
            raise DocumentNotFoundError(f"Document {identifier} does not exist", identifier=identifier)
        raise ConcurrentModificationError(
            f"Document {identifier} no longer matches {sorted(guard or {})}", identifier=identifier
        )

    async def update_where(self, collection: str, filter: Document | None, patch: Document) -> list[Document]:
        where, variables = build_where(filter)
        return await self._records(
            f"UPDATE type::table($tb) MERGE $patch{where} RETURN AFTER;",
            {"tb": collection, "patch": patch, **variables},
        )

    async def replace(self, identifier: str, document: Document) -> Document:
        records = await self._records(
            "UPDATE type::thing($tb, $key) CONTENT $doc RETURN AFTER;",
            {**self._thing_vars(identifier), "doc": _content(document)},
        )
        if not records:
            raise DocumentNotFoundError(f"Document {identifier} does not exist", identifier=identifier)
        return records[0]

    async def upsert(self, identifier: str, document: Document) -> Document:
        records = await self._records(
            "UPSERT type::thing($tb, $key) CONTENT $doc RETURN AFTER;",
            {**self._thing_vars(identifier), "doc": _content(document)},
        )
        return records[0]

    async def delete(self, identifier: str) -> bool:
        records = await self._records("DELETE type::thing($tb, $key) RETURN BEFORE;", self._thing_vars(identifier))
        return bool(records)

    async def delete_since(self, collection: str, field: str, since: datetime) -> int:
        records = await self._records(
            f"DELETE type::table($tb) WHERE {quote_field(field)} >= <datetime>$since RETURN BEFORE;",
            {"tb": collection, "since": since},
        )
        return len(records)

    async def count(self, collection: str) -> int:
        records = await self._records("SELECT count() FROM type::table($tb) GROUP ALL;", {"tb": collection})
        return int(records[0].get("count", 0)) if records else 0

    async def collections(self) -> list[str]:
        response = await self.client.query("INFO FOR DB;")
        result = response.first_result
        info = result.result if result and isinstance(result.result, dict) else {}
        # 2.x reports "tables"; 1.x reported "tb"
        tables = info.get("tables", info.get("tb", {})) or {}
        return sorted(tables)


__all__ = [
    "Document",
    "BaseDocumentStore",
    "SurrealDocumentStore",
    "parse_identifier",
    "normalize_identifier",
    "record_key",
    "quote_field",
    "build_where",
]
