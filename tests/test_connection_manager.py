"""Tests for the store connection manager."""

from unittest.mock import AsyncMock, patch

import pytest

from surreal_undo.config import MigrationConfig
from surreal_undo.connection_manager import StoreConnectionManager
from surreal_undo.exceptions import StoreConnectionError
from surreal_undo.sdk import AuthenticationError
from surreal_undo.store import SurrealDocumentStore


def mock_client(healthy: bool = True, signin_error: Exception | None = None) -> AsyncMock:
    client = AsyncMock()
    client.health.return_value = healthy
    if signin_error is not None:
        client.signin.side_effect = signin_error
    return client


class TestStoreConnectionManager:
    async def test_connects_and_signs_in(self) -> None:
        config = MigrationConfig(url="http://db:8000", namespace="ns", database="db", user="u", password="p")
        client = mock_client()

        with patch("surreal_undo.connection_manager.HTTPConnection", return_value=client) as conn_cls:
            manager = StoreConnectionManager(config)
            async with manager as store:
                assert isinstance(store, SurrealDocumentStore)
                assert store.client is client

        conn_cls.assert_called_once_with("http://db:8000", "ns", "db", protocol="cbor")
        client.connect.assert_awaited_once()
        client.signin.assert_awaited_once_with("u", "p")
        client.close.assert_awaited_once()

    async def test_client_is_reused(self) -> None:
        client = mock_client()
        with patch("surreal_undo.connection_manager.HTTPConnection", return_value=client) as conn_cls:
            manager = StoreConnectionManager(MigrationConfig())
            assert await manager.get_client() is await manager.get_client()

        conn_cls.assert_called_once()

    async def test_unhealthy_server(self) -> None:
        client = mock_client(healthy=False)
        with patch("surreal_undo.connection_manager.HTTPConnection", return_value=client):
            with pytest.raises(StoreConnectionError, match="not reachable"):
                await StoreConnectionManager(MigrationConfig()).get_client()

        client.signin.assert_not_awaited()
        client.close.assert_awaited_once()

    async def test_rejected_credentials(self) -> None:
        client = mock_client(signin_error=AuthenticationError("Authentication failed", code=401))
        with patch("surreal_undo.connection_manager.HTTPConnection", return_value=client):
            with pytest.raises(StoreConnectionError, match="Authentication failed"):
                await StoreConnectionManager(MigrationConfig()).get_client()

        client.close.assert_awaited_once()
