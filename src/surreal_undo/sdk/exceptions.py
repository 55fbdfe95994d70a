"""
Transport-level exceptions.

Raised by the HTTP connection and the query response parser. The migration
engine treats any ``SurrealDBError`` raised during a single mutation as a
per-action failure.
"""


class SurrealDBError(Exception):
    """Base exception for all transport errors."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class ConnectionError(SurrealDBError):
    """Raised when the server cannot be reached."""

    pass


class AuthenticationError(SurrealDBError):
    """Raised when signin is rejected."""

    pass


class QueryError(SurrealDBError):
    """Raised when an RPC call or a query statement fails."""

    def __init__(self, message: str, query: str | None = None, code: int | None = None):
        self.query = query
        super().__init__(message, code)
