"""
CBOR codec for the SurrealDB RPC protocol.

SurrealDB extends CBOR with custom tags for its own value types. Decoding
through these tags keeps record links, datetimes and decimals typed, which is
what lets a captured document be written back verbatim on undo.

Tags handled:
- TAG_NONE (6): NONE (absent value)
- TAG_TABLE (7): table name
- TAG_RECORDID (8): record id ``[table, key]``
- TAG_STRING_UUID (9): UUID
- TAG_STRING_DECIMAL (10): Decimal
- TAG_DATETIME (12): ISO 8601 datetime
- TAG_STRING_DURATION (14): duration
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import cbor2
from cbor2 import CBORTag

TAG_NONE = 6
TAG_TABLE = 7
TAG_RECORDID = 8
TAG_STRING_UUID = 9
TAG_STRING_DECIMAL = 10
TAG_DATETIME = 12
TAG_STRING_DURATION = 14

_PLAIN_KEY = re.compile(r"^[A-Za-z0-9_]*[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class RecordId:
    """
    A SurrealDB record id (``table:key``).

    Integer keys render bare (``users:42``); string keys that are all digits
    or contain other than letters, digits and underscores render in angle
    brackets (``users:⟨42⟩``) so the string form parses back to the same key.
    Array and object keys render as JSON literals (``temp:["london",1]``),
    which is also valid SurrealQL.
    """

    table: str
    id: Any

    def __str__(self) -> str:
        key = self.id
        if isinstance(key, int) and not isinstance(key, bool):
            return f"{self.table}:{key}"
        if isinstance(key, (list, tuple, dict)):
            return f"{self.table}:{json.dumps(key, ensure_ascii=False, separators=(',', ':'))}"
        key = str(key)
        if _PLAIN_KEY.match(key):
            return f"{self.table}:{key}"
        return f"{self.table}:⟨{key}⟩"

    @classmethod
    def parse(cls, value: str) -> RecordId:
        """Parse ``table:key`` into a RecordId, restoring integer, array and object keys."""
        if ":" not in value:
            raise ValueError(f"Invalid record ID format: {value}")
        table, key = value.split(":", 1)
        if not table or not key:
            raise ValueError(f"Invalid record ID format: {value}")

        if key.startswith("⟨") and key.endswith("⟩"):
            return cls(table=table, id=key[1:-1])
        if key.startswith("`") and key.endswith("`"):
            return cls(table=table, id=key[1:-1].replace("``", "`"))
        if key[0] in "[{":
            try:
                return cls(table=table, id=json.loads(key))
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid record ID format: {value}") from e
        if key.lstrip("-").isdigit():
            return cls(table=table, id=int(key))
        return cls(table=table, id=key)


@dataclass(frozen=True)
class Table:
    """A SurrealDB table reference."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Duration:
    """A SurrealDB duration literal such as ``1h30m``."""

    value: str

    def __str__(self) -> str:
        return self.value


def _to_tag(value: Any) -> CBORTag | None:
    """SurrealDB tag for a typed value, or None for values CBOR carries natively."""
    if value is None:
        # NONE makes SurrealDB drop the field instead of storing NULL
        return CBORTag(TAG_NONE, None)
    if isinstance(value, RecordId):
        return CBORTag(TAG_RECORDID, [value.table, value.id])
    if isinstance(value, Table):
        return CBORTag(TAG_TABLE, value.name)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return CBORTag(TAG_DATETIME, value.isoformat())
    if isinstance(value, UUID):
        return CBORTag(TAG_STRING_UUID, str(value))
    if isinstance(value, Decimal):
        return CBORTag(TAG_STRING_DECIMAL, str(value))
    if isinstance(value, Duration):
        return CBORTag(TAG_STRING_DURATION, value.value)
    return None


def _prepare(data: Any) -> Any:
    """
    Replace typed values with SurrealDB tags before encoding.

    cbor2 has its own encoders for datetime, Decimal and UUID that would
    otherwise win over the ``default`` hook.
    """
    if isinstance(data, dict):
        return {k: _prepare(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_prepare(item) for item in data]
    tagged = _to_tag(data)
    return data if tagged is None else tagged


def _default_encoder(encoder: Any, value: Any) -> None:
    raise TypeError(f"Cannot CBOR encode {type(value)}")


def _tag_hook(decoder: Any, tag: Any) -> Any:
    if tag.tag == TAG_NONE:
        return None
    if tag.tag == TAG_TABLE:
        return Table(name=tag.value)
    if tag.tag == TAG_RECORDID:
        if isinstance(tag.value, list) and len(tag.value) == 2:
            return RecordId(table=tag.value[0], id=tag.value[1])
        if isinstance(tag.value, str):
            return RecordId.parse(tag.value)
        return tag.value
    if tag.tag == TAG_STRING_UUID:
        return UUID(tag.value)
    if tag.tag == TAG_STRING_DECIMAL:
        return Decimal(tag.value)
    if tag.tag == TAG_DATETIME:
        if isinstance(tag.value, str):
            return datetime.fromisoformat(tag.value.replace("Z", "+00:00"))
        return tag.value
    if tag.tag == TAG_STRING_DURATION:
        return Duration(value=tag.value)
    return tag.value


def encode(data: Any) -> bytes:
    """Encode a Python value to CBOR bytes using SurrealDB's tags."""
    result: bytes = cbor2.dumps(_prepare(data), default=_default_encoder)
    return result


def decode(data: bytes) -> Any:
    """Decode CBOR bytes, mapping SurrealDB tags back to Python types."""
    return cbor2.loads(data, tag_hook=_tag_hook)
