"""
Exception hierarchy for the migration and undo engine.

Run-level failures (``StoreConnectionError``, ``JournalError`` subclasses,
``PlanError``) abort a migrate or undo command. ``StoreError`` subclasses are
raised for a single document operation and are recorded or tallied per
action instead.
"""


class UndoError(Exception):
    """Base exception for all engine errors."""

    pass


class StoreConnectionError(UndoError):
    """Raised when the store cannot be reached or rejects the credentials."""

    pass


class JournalError(UndoError):
    """Base exception for journal problems."""

    def __init__(self, message: str, tag: str | None = None):
        self.tag = tag
        super().__init__(message)


class JournalPersistenceError(JournalError):
    """Raised when an action cannot be durably written to the journal."""

    pass


class MissingJournalError(JournalError):
    """Raised when no journal exists for the requested tag."""

    pass


class JournalCorruptError(JournalError):
    """Raised when a journal file cannot be parsed."""

    def __init__(self, message: str, tag: str | None = None, line: int | None = None):
        self.line = line
        super().__init__(message, tag)


class PlanError(UndoError):
    """Raised when a migration plan file is missing or invalid."""

    pass


class StoreError(UndoError):
    """Base exception for single-document store failures."""

    def __init__(self, message: str, identifier: str | None = None):
        self.identifier = identifier
        super().__init__(message)


class DocumentNotFoundError(StoreError):
    """Raised when the target document of a replace or update does not exist."""

    pass


class ConcurrentModificationError(StoreError):
    """Raised when a guarded update finds the document no longer matches its filter."""

    pass


class InvalidFilterError(StoreError):
    """Raised when a filter or field name cannot be expressed safely."""

    pass


__all__ = [
    "UndoError",
    "StoreConnectionError",
    "JournalError",
    "JournalPersistenceError",
    "MissingJournalError",
    "JournalCorruptError",
    "PlanError",
    "StoreError",
    "DocumentNotFoundError",
    "ConcurrentModificationError",
    "InvalidFilterError",
]
