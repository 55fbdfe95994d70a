"""
HTTP connection to SurrealDB.

Stateless: every RPC call is an independent POST to ``/rpc`` carrying the
namespace, database and bearer token in headers. One connection serves a
whole migration or undo run.
"""

from typing import Any, Literal, Self

import httpx

from .exceptions import AuthenticationError, ConnectionError, QueryError
from .rpc import RPCRequest, RPCResponse
from .types import QueryResponse


class HTTPConnection:
    """
    HTTP-based RPC connection.

    Supports the JSON and CBOR protocols. CBOR is the default: it keeps record
    links, datetimes and decimals typed on the way out, so a document read
    before a mutation can be written back unchanged.
    """

    def __init__(
        self,
        url: str,
        namespace: str,
        database: str,
        timeout: float = 30.0,
        protocol: Literal["json", "cbor"] = "cbor",
    ):
        """
        Args:
            url: SurrealDB URL (``ws://`` and ``wss://`` are rewritten to HTTP)
            namespace: Target namespace
            database: Target database
            timeout: Request timeout in seconds
            protocol: Serialization protocol, "json" or "cbor"
        """
        if url.startswith("ws://"):
            url = url.replace("ws://", "http://", 1)
        elif url.startswith("wss://"):
            url = url.replace("wss://", "https://", 1)

        if protocol not in ("json", "cbor"):
            raise ValueError(f"Invalid protocol '{protocol}'. Must be 'json' or 'cbor'.")

        self.url = url.rstrip("/")
        self.namespace = namespace
        self.database = database
        self.timeout = timeout
        self.protocol: Literal["json", "cbor"] = protocol
        self._client: httpx.AsyncClient | None = None
        self._token: str | None = None
        self._request_id = 0

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def headers(self) -> dict[str, str]:
        mime = "application/cbor" if self.protocol == "cbor" else "application/json"
        h = {
            "Surreal-NS": self.namespace,
            "Surreal-DB": self.database,
            "Accept": mime,
            "Content-Type": mime,
        }
        if self._token:
            h["Authorization"] = f"Bearer {self._token}"
        return h

    async def connect(self) -> Self:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.url, timeout=self.timeout)
        return self

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        self._token = None

    async def __aenter__(self) -> Self:
        return await self.connect()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _send_rpc(self, request: RPCRequest) -> RPCResponse:
        if not self._client:
            raise ConnectionError("Not connected. Call connect() first.")

        request.id = self._next_request_id()
        content = request.to_cbor() if self.protocol == "cbor" else request.to_json()

        try:
            response = await self._client.post("/rpc", content=content, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise QueryError(
                message=f"HTTP error: {e.response.status_code} - {e.response.text}",
                code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise ConnectionError(f"Request failed: {e}")

        if self.protocol == "cbor":
            return RPCResponse.from_cbor(response.content)
        return RPCResponse.from_dict(response.json())

    async def rpc(self, method: str, params: list[Any] | dict[str, Any] | None = None) -> Any:
        """Execute an RPC call and return its result payload."""
        response = await self._send_rpc(RPCRequest(method=method, params=params or []))
        if response.error is not None:
            raise QueryError(message=response.error.message, code=response.error.code)
        return response.result

    async def query(self, sql: str, vars: dict[str, Any] | None = None) -> QueryResponse:
        """
        Execute SurrealQL and return one result per statement.

        Raises:
            QueryError: If the call fails or any statement reports ERR
        """
        result = await self.rpc("query", [sql, vars or {}])
        return QueryResponse.from_rpc_result(result).raise_for_status(sql)

    async def signin(self, user: str, password: str) -> None:
        """Obtain a root-level token used for every subsequent request."""
        if not self._client:
            raise ConnectionError("Not connected. Call connect() first.")

        try:
            response = await self._client.post(
                "/signin",
                json={"user": user, "pass": password},
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )
        except httpx.RequestError as e:
            raise ConnectionError(f"Request failed: {e}")

        if response.status_code != 200:
            raise AuthenticationError(f"Authentication failed: {response.text}", code=response.status_code)
        self._token = response.json().get("token")

    async def health(self) -> bool:
        """Check GET /health; any transport error counts as unhealthy."""
        if not self._client:
            return False
        try:
            response = await self._client.get("/health")
        except httpx.RequestError:
            return False
        return response.status_code == 200
