"""
SurrealDB RPC message format.

Requests and responses are the JSON-RPC style envelopes POSTed to ``/rpc``,
serialized either as JSON or as CBOR.
"""

import base64
import json
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any
from uuid import UUID

from . import cbor as cbor_module


def _strip_none_values(data: Any) -> Any:
    """
    Recursively drop ``None`` values for the JSON protocol.

    JSON ``null`` is stored as ``NULL`` by SurrealDB, whereas an omitted key
    is ``NONE``; MERGE with an omitted key leaves the field alone, so this is
    only lossless for CONTENT payloads. Use CBOR when fields must be removed.
    """
    if isinstance(data, dict):
        return {k: _strip_none_values(v) for k, v in data.items() if v is not None}
    if isinstance(data, list):
        return [_strip_none_values(item) for item in data]
    return data


class SurrealJSONEncoder(json.JSONEncoder):
    """JSON encoder for the value types documents carry on the way to SurrealDB."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date, time)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (cbor_module.RecordId, cbor_module.Table, cbor_module.Duration)):
            return str(obj)
        if isinstance(obj, bytes):
            return base64.b64encode(obj).decode("ascii")
        return super().default(obj)


@dataclass
class RPCRequest:
    """
    An RPC request.

    Attributes:
        method: RPC method name (query, signin, use, ...)
        params: Method parameters
        id: Request identifier echoed back in the response
    """

    method: str
    params: list[Any] | dict[str, Any] = field(default_factory=list)
    id: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "method": self.method,
            "params": self.params if isinstance(self.params, list) else [self.params],
        }

    def to_json(self) -> str:
        data = self.to_dict()
        data["params"] = _strip_none_values(data["params"])
        return json.dumps(data, cls=SurrealJSONEncoder)

    def to_cbor(self) -> bytes:
        return cbor_module.encode(self.to_dict())

    @classmethod
    def query(cls, sql: str, vars: dict[str, Any] | None = None, request_id: int = 1) -> "RPCRequest":
        """Build a ``query`` request."""
        return cls(method="query", params=[sql, vars or {}], id=request_id)


@dataclass
class RPCError:
    """Error member of an RPC response."""

    code: int
    message: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RPCError":
        return cls(
            code=data.get("code", -1),
            message=data.get("message", "Unknown error"),
        )


@dataclass
class RPCResponse:
    """
    An RPC response.

    Attributes:
        id: Identifier of the request this answers
        result: Result payload on success
        error: Error payload on failure
    """

    id: int
    result: Any = None
    error: RPCError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RPCResponse":
        error = None
        if data.get("error") is not None:
            error = RPCError.from_dict(data["error"])
        return cls(id=data.get("id", 0), result=data.get("result"), error=error)

    @classmethod
    def from_json(cls, json_str: str) -> "RPCResponse":
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_cbor(cls, cbor_data: bytes) -> "RPCResponse":
        return cls.from_dict(cbor_module.decode(cbor_data))
