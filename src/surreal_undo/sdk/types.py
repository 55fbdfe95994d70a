"""
Typed wrappers around SurrealDB query responses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import QueryError


class ResponseStatus(str, Enum):
    """Status of a single statement result."""

    OK = "OK"
    ERR = "ERR"


@dataclass
class QueryResult:
    """
    Result of one statement of a query.

    Attributes:
        status: OK or ERR
        result: Records, scalar, or the error message when status is ERR
        time: Execution time as reported by SurrealDB
    """

    status: ResponseStatus
    result: Any
    time: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueryResult":
        return cls(
            status=ResponseStatus(data.get("status", "OK")),
            result=data.get("result"),
            time=data.get("time", ""),
        )

    @property
    def is_ok(self) -> bool:
        return self.status == ResponseStatus.OK

    @property
    def records(self) -> list[dict[str, Any]]:
        """Result as a list of records; a single record is wrapped, scalars give an empty list."""
        if isinstance(self.result, list):
            return [r for r in self.result if isinstance(r, dict)]
        if isinstance(self.result, dict):
            return [self.result]
        return []


@dataclass
class QueryResponse:
    """
    Response to a ``query`` RPC call: one QueryResult per statement.
    """

    results: list[QueryResult] = field(default_factory=list)
    raw: Any = None

    @classmethod
    def from_rpc_result(cls, data: Any) -> "QueryResponse":
        results: list[QueryResult] = []
        items = data if isinstance(data, list) else [data] if data is not None else []
        for item in items:
            if isinstance(item, dict) and "status" in item:
                results.append(QueryResult.from_dict(item))
            else:
                results.append(QueryResult(status=ResponseStatus.OK, result=item))
        return cls(results=results, raw=data)

    @property
    def is_ok(self) -> bool:
        return all(r.is_ok for r in self.results)

    @property
    def first_result(self) -> QueryResult | None:
        return self.results[0] if self.results else None

    @property
    def all_records(self) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for result in self.results:
            records.extend(result.records)
        return records

    def raise_for_status(self, sql: str | None = None) -> "QueryResponse":
        """Raise QueryError for the first failed statement, otherwise return self."""
        for result in self.results:
            if not result.is_ok:
                raise QueryError(message=str(result.result), query=sql)
        return self
