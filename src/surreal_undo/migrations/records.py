"""
Journal data model.

``ActionRecord`` is the explicit outcome of one attempted document-level
mutation. The executor produces it, the recorder persists it, the runner logs
it and the undo engine consumes it. ``MigrationRun`` is the ordered list of
a run's actions under its tag.

Document payloads are kept as native Python values in memory. On the way to
disk, values JSON cannot carry are written as single-key tagged objects
(``{"$datetime": ...}``, ``{"$record": ...}`` ...) so a restored document
gets back the exact types it had.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Any, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..sdk import Duration, RecordId, Table
from ..store import normalize_identifier
from .tags import make_tag

_TAGS = ("$datetime", "$record", "$decimal", "$uuid", "$bytes", "$duration", "$table", "$literal")


class ActionKind(StrEnum):
    INSERT = "insert"
    UPDATE = "update"


class ActionStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    DRY_RUN = "dryRun"


def encode_value(value: Any) -> Any:
    """Convert a document value to its JSON-safe journal form."""
    if isinstance(value, dict):
        encoded = {k: encode_value(v) for k, v in value.items()}
        if len(value) == 1 and next(iter(value)) in _TAGS:
            # A user dict that looks like a tag is wrapped so it decodes as itself
            return {"$literal": encoded}
        return encoded
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, RecordId):
        return {"$record": str(value)}
    if isinstance(value, Decimal):
        return {"$decimal": str(value)}
    if isinstance(value, UUID):
        return {"$uuid": str(value)}
    if isinstance(value, bytes):
        return {"$bytes": base64.b64encode(value).decode("ascii")}
    if isinstance(value, Duration):
        return {"$duration": value.value}
    if isinstance(value, Table):
        return {"$table": value.name}
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"Cannot journal value of type {type(value).__name__}")


def decode_value(value: Any) -> Any:
    """Inverse of :func:`encode_value`."""
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    if not isinstance(value, dict):
        return value
    if len(value) == 1:
        tag, inner = next(iter(value.items()))
        if tag == "$literal":
            return {k: decode_value(v) for k, v in inner.items()}
        if tag == "$datetime":
            return datetime.fromisoformat(inner)
        if tag == "$record":
            return RecordId.parse(inner)
        if tag == "$decimal":
            return Decimal(inner)
        if tag == "$uuid":
            return UUID(inner)
        if tag == "$bytes":
            return base64.b64decode(inner)
        if tag == "$duration":
            return Duration(inner)
        if tag == "$table":
            return Table(inner)
    return {k: decode_value(v) for k, v in value.items()}


class ActionRecord(BaseModel):
    """
    One attempted document-level mutation and its outcome.

    Presence rules, enforced on construction and on load:

    - ``identifier`` is required for success.
    - ``previous`` (the full pre-mutation document) is present iff the action
      is a successful update.
    - ``error`` is present iff the status is error.
    - inserts carry ``document``; updates carry ``update``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    collection: str
    kind: ActionKind = Field(alias="action")
    status: ActionStatus
    identifier: str | None = Field(default=None, alias="_id")
    document: dict[str, Any] | None = None
    previous: dict[str, Any] | None = None
    update: dict[str, Any] | None = None
    error: str | None = None

    @field_validator("identifier", mode="before")
    @classmethod
    def _canonical_identifier(cls, value: Any) -> str | None:
        return normalize_identifier(value)

    @model_validator(mode="after")
    def _check_presence(self) -> Self:
        reversible_update = self.kind == ActionKind.UPDATE and self.status == ActionStatus.SUCCESS
        if reversible_update != (self.previous is not None):
            raise ValueError("previous state is required for, and only for, successful updates")
        if (self.status == ActionStatus.ERROR) != (self.error is not None):
            raise ValueError("error detail is required for, and only for, failed actions")
        if self.status == ActionStatus.SUCCESS and self.identifier is None:
            raise ValueError("successful actions must carry the document identifier")
        if self.kind == ActionKind.INSERT and self.document is None:
            raise ValueError("insert actions must carry the inserted document")
        if self.kind == ActionKind.UPDATE and self.update is None:
            raise ValueError("update actions must carry the update instruction")
        return self

    @property
    def is_reversible(self) -> bool:
        """Only successful actions touched the store."""
        return self.status == ActionStatus.SUCCESS

    def describe(self) -> str:
        """One-line description carrying collection, kind and identifier."""
        target = f" {self.identifier}" if self.identifier else ""
        return f"{self.kind}{target} in '{self.collection}' [{self.status}]"

    def to_json_dict(self) -> dict[str, Any]:
        # Built by hand: model_dump would turn RecordId dataclasses into plain dicts
        data: dict[str, Any] = {
            "collection": self.collection,
            "action": self.kind.value,
            "status": self.status.value,
        }
        optional = {
            "_id": self.identifier,
            "document": self.document,
            "previous": self.previous,
            "update": self.update,
            "error": self.error,
        }
        for key, value in optional.items():
            if value is not None:
                data[key] = encode_value(value)
        return data

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> ActionRecord:
        return cls.model_validate(decode_value(data))


class MigrationRun(BaseModel):
    """
    A run's journal: its tag, start instant and ordered actions.

    The tag is assigned once in :meth:`start` and cannot be reassigned.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    tag: str = Field(frozen=True)
    created_at: datetime = Field(alias="createdAt")
    actions: list[ActionRecord] = Field(default_factory=list)

    @classmethod
    def start(cls, now: datetime | None = None) -> MigrationRun:
        """Begin a new run tagged with the invocation time."""
        tag, instant = make_tag(now)
        return cls(tag=tag, created_at=instant)

    def header(self) -> dict[str, Any]:
        created = self.created_at.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {"tag": self.tag, "createdAt": created}

    def to_json_dict(self) -> dict[str, Any]:
        return {**self.header(), "actions": [a.to_json_dict() for a in self.actions]}

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> MigrationRun:
        actions = [ActionRecord.from_json_dict(a) for a in data.get("actions", [])]
        return cls(tag=data["tag"], created_at=data["createdAt"], actions=actions)

    def count(self, status: ActionStatus) -> int:
        return sum(1 for a in self.actions if a.status == status)


__all__ = [
    "ActionKind",
    "ActionStatus",
    "ActionRecord",
    "MigrationRun",
    "encode_value",
    "decode_value",
]
