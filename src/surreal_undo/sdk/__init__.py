"""
Minimal SurrealDB client used by the migration engine.

HTTP RPC transport with JSON and CBOR codecs, typed query responses and the
transport exception hierarchy.
"""

from .cbor import Duration, RecordId, Table
from .exceptions import AuthenticationError, ConnectionError, QueryError, SurrealDBError
from .http import HTTPConnection
from .rpc import RPCError, RPCRequest, RPCResponse
from .types import QueryResponse, QueryResult, ResponseStatus

__all__ = [
    "HTTPConnection",
    "RPCRequest",
    "RPCResponse",
    "RPCError",
    "RecordId",
    "Table",
    "Duration",
    "QueryResponse",
    "QueryResult",
    "ResponseStatus",
    "SurrealDBError",
    "ConnectionError",
    "AuthenticationError",
    "QueryError",
]
