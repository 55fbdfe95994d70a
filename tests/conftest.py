"""
Pytest configuration for surreal-undo tests.

Unit tests run against ``MemoryDocumentStore`` and a temporary journal
directory. Integration tests (marked ``integration``) talk to a live
SurrealDB and skip when none answers on /health.

Shared connection constants are defined here so every test file can import them
instead of hardcoding URLs, credentials, and ports.
"""

import logging
import os
from collections.abc import Generator
from pathlib import Path

import pytest

from surreal_undo.config import MigrationConfig
from surreal_undo.testing import MemoryDocumentStore

# ---------------------------------------------------------------------------
# Shared connection constants (import these in test files)
# ---------------------------------------------------------------------------
TEST_PORT = int(os.getenv("SURREALDB_PORT", "8000"))
SURREALDB_URL = os.getenv("SURREALDB_URL", f"http://localhost:{TEST_PORT}")
SURREALDB_USER = os.getenv("SURREALDB_USER", "root")
SURREALDB_PASS = os.getenv("SURREALDB_PASS", "root")
SURREALDB_NAMESPACE = os.getenv("SURREALDB_NAMESPACE", "test")
SURREALDB_DATABASE = os.getenv("SURREALDB_DATABASE", "surreal_undo_test")


def is_surrealdb_healthy(url: str = SURREALDB_URL) -> bool:
    """Check if SurrealDB is healthy via /health endpoint."""
    import urllib.error
    import urllib.request

    try:
        req = urllib.request.Request(f"{url.rstrip('/')}/health", method="GET")
        with urllib.request.urlopen(req, timeout=2) as response:
            return response.status == 200
    except (urllib.error.URLError, TimeoutError, OSError):
        return False


@pytest.fixture(scope="session")
def surrealdb_available() -> Generator[bool, None, None]:
    """
    Session-scoped fixture that indicates if SurrealDB is available.

    Use this fixture in tests that need to conditionally skip if SurrealDB
    is not available:

        def test_something(surrealdb_available):
            if not surrealdb_available:
                pytest.skip("SurrealDB not available")
    """
    yield is_surrealdb_healthy()


@pytest.fixture
def store() -> MemoryDocumentStore:
    """Empty in-memory store."""
    return MemoryDocumentStore()


@pytest.fixture
def journal_dir(tmp_path: Path) -> Path:
    return tmp_path / "migrations"


@pytest.fixture
def config(journal_dir: Path) -> MigrationConfig:
    return MigrationConfig(journal_dir=journal_dir)


@pytest.fixture(autouse=True)
def reset_package_logging() -> Generator[None, None, None]:
    """Drop handlers installed by CLI tests so later tests don't log to closed streams."""
    yield
    logger = logging.getLogger("surreal_undo")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
