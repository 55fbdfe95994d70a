import logging
from typing import Any

from .config import MigrationConfig
from .exceptions import StoreConnectionError
from .sdk import HTTPConnection, SurrealDBError
from .store import SurrealDocumentStore

logger = logging.getLogger(__name__)


class StoreConnectionManager:
    """
    Owns the single store connection of a migrate or undo run.
    """

    def __init__(self, config: MigrationConfig):
        """
        :param config: Resolved run configuration.
        """
        self.config = config
        self._client: HTTPConnection | None = None

    async def get_client(self) -> HTTPConnection:
        """
        Get the connection, establishing it on first use.

        :raises StoreConnectionError: If the server is unreachable or rejects the credentials.
        """
        if self._client is None:
            self._client = await self._create_client()
        return self._client

    async def _create_client(self) -> HTTPConnection:
        client = HTTPConnection(
            self.config.url,
            self.config.namespace,
            self.config.database,
            protocol=self.config.protocol,
        )
        await client.connect()
        try:
            if not await client.health():
                raise StoreConnectionError(f"SurrealDB at {self.config.url} is not reachable")
            await client.signin(self.config.user, self.config.password)
        except SurrealDBError as e:
            await client.close()
            raise StoreConnectionError(f"Could not connect to {self.config.url}: {e}") from e
        except StoreConnectionError:
            await client.close()
            raise

        logger.info(f"Connected to {self.config.url} ({self.config.namespace}/{self.config.database})")
        return client

    async def get_store(self) -> SurrealDocumentStore:
        """Get a document store bound to the connection."""
        return SurrealDocumentStore(await self.get_client())

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    async def __aenter__(self) -> SurrealDocumentStore:
        return await self.get_store()

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
