"""
Testing utilities for surreal-undo.

Provides an in-memory document store implementing the same contract as the
SurrealDB-backed store, so plans, journals and undo passes can be exercised
without a server.
"""

from .memory import MemoryDocumentStore

__all__ = ["MemoryDocumentStore"]
