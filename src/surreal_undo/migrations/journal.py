"""
Durable, append-only run journal.

Each run writes ``migration_<tag>.jsonl`` in the journal directory. The first
line is the run header (tag and start time); every following line is one
ActionRecord, appended with a single write and fsynced before ``record``
returns. A crash can therefore only damage the line being written, which the
loader drops with a warning.

Journals written by older versions as one JSON object
(``migration_<tag>.json``) are still readable.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from types import TracebackType
from typing import Any

from pydantic import ValidationError

from ..exceptions import JournalCorruptError, JournalPersistenceError, MissingJournalError
from ..sdk import RecordId
from .records import ActionKind, ActionRecord, ActionStatus, MigrationRun
from .tags import is_safe_tag

logger = logging.getLogger(__name__)

JOURNAL_PREFIX = "migration_"
JOURNAL_SUFFIX = ".jsonl"
LEGACY_SUFFIX = ".json"


def journal_filename(tag: str, legacy: bool = False) -> str:
    return f"{JOURNAL_PREFIX}{tag}{LEGACY_SUFFIX if legacy else JOURNAL_SUFFIX}"


def _dumps(data: dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


class JournalRecorder:
    """
    Appends a run's actions to its journal file.

    Use as a context manager: the file is created (with the run header) on
    entry and closed on exit.

    Example::

        run = MigrationRun.start()
        with JournalRecorder(Path("migrations"), run) as recorder:
            recorder.record(action)
    """

    def __init__(self, journal_dir: Path | str, run: MigrationRun):
        self.journal_dir = Path(journal_dir)
        self.run = run
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        return self.journal_dir / journal_filename(self.run.tag)

    def open(self) -> None:
        """
        Create the journal file and write the run header.

        Raises:
            JournalPersistenceError: If the directory is unwritable or a journal for this tag exists
        """
        try:
            self.journal_dir.mkdir(parents=True, exist_ok=True)
            self._fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL | os.O_APPEND, 0o644)
        except FileExistsError as e:
            raise JournalPersistenceError(f"Journal already exists: {self.path}", tag=self.run.tag) from e
        except OSError as e:
            raise JournalPersistenceError(f"Cannot create journal {self.path}: {e}", tag=self.run.tag) from e

        self._append(self.run.header())
        logger.debug(f"Journal opened: {self.path}")

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> JournalRecorder:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def _append(self, data: dict[str, Any]) -> None:
        if self._fd is None:
            raise JournalPersistenceError("Journal is not open", tag=self.run.tag)

        try:
            payload = (_dumps(data) + "\n").encode("utf-8")
        except (TypeError, ValueError) as e:
            raise JournalPersistenceError(f"Cannot serialise journal entry: {e}", tag=self.run.tag) from e

        try:
            written = os.write(self._fd, payload)
            if written != len(payload):
                raise OSError(f"short write ({written} of {len(payload)} bytes)")
            os.fsync(self._fd)
        except OSError as e:
            raise JournalPersistenceError(f"Cannot write journal {self.path}: {e}", tag=self.run.tag) from e

    def record(self, action: ActionRecord) -> ActionRecord:
        """
        Durably append ``action`` to the run.

        When this returns, the action survives a crash of the process.

        Raises:
            JournalPersistenceError: If the action cannot be serialised, or
                the write or fsync fails
        """
        try:
            data = action.to_json_dict()
        except TypeError as e:
            raise JournalPersistenceError(f"Cannot journal {action.describe()}: {e}", tag=self.run.tag) from e
        self._append(data)
        self.run.actions.append(action)
        return action


class JournalStore:
    """
    Locates and loads journals by tag.
    """

    def __init__(self, journal_dir: Path | str):
        self.journal_dir = Path(journal_dir)

    def path_for(self, tag: str) -> Path:
        """Path of the journal for ``tag``; the legacy file is used only when it is the one present."""
        if not is_safe_tag(tag):
            raise MissingJournalError(f"Invalid tag: {tag!r}", tag=tag)
        current = self.journal_dir / journal_filename(tag)
        legacy = self.journal_dir / journal_filename(tag, legacy=True)
        if not current.exists() and legacy.exists():
            return legacy
        return current

    def exists(self, tag: str) -> bool:
        try:
            return self.path_for(tag).exists()
        except MissingJournalError:
            return False

    def list_tags(self) -> list[str]:
        """Tags of all journals in the directory, oldest first."""
        if not self.journal_dir.exists():
            return []
        tags = set()
        for path in self.journal_dir.iterdir():
            name = path.name
            if not name.startswith(JOURNAL_PREFIX):
                continue
            for suffix in (JOURNAL_SUFFIX, LEGACY_SUFFIX):
                if name.endswith(suffix):
                    tags.add(name[len(JOURNAL_PREFIX) : -len(suffix)])
                    break
        return sorted(tags)

    def load(self, tag: str) -> MigrationRun:
        """
        Load the run recorded under ``tag``.

        Raises:
            MissingJournalError: If no journal exists for the tag
            JournalCorruptError: If the journal cannot be parsed
        """
        path = self.path_for(tag)
        if not path.exists():
            raise MissingJournalError(f"Migration journal not found: {path}", tag=tag)

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise JournalCorruptError(f"Cannot read journal {path}: {e}", tag=tag) from e

        if path.suffix == LEGACY_SUFFIX:
            run = self._load_legacy(text, tag)
        else:
            run = self._load_lines(text, tag)

        if run.tag != tag:
            raise JournalCorruptError(f"Journal {path} belongs to tag {run.tag}", tag=tag)
        logger.debug(f"Loaded journal {path} with {len(run.actions)} actions")
        return run

    def _load_lines(self, text: str, tag: str) -> MigrationRun:
        lines = text.split("\n")
        complete = text.endswith("\n")
        if complete:
            lines.pop()

        parsed: list[dict[str, Any]] = []
        for number, line in enumerate(lines, 1):
            is_last = number == len(lines)
            try:
                parsed.append(json.loads(line))
            except json.JSONDecodeError as e:
                if is_last and not complete:
                    logger.warning(f"Dropping truncated final journal line {number} for {tag}")
                    break
                raise JournalCorruptError(f"Malformed journal line {number}: {e}", tag=tag, line=number) from e

        if not parsed:
            raise JournalCorruptError("Journal has no header", tag=tag, line=1)

        header, *entries = parsed
        try:
            run = MigrationRun(tag=header["tag"], created_at=header["createdAt"])
        except (KeyError, TypeError, ValidationError) as e:
            raise JournalCorruptError(f"Invalid journal header: {e}", tag=tag, line=1) from e

        for number, entry in enumerate(entries, 2):
            try:
                run.actions.append(ActionRecord.from_json_dict(entry))
            except (TypeError, ValueError, ValidationError) as e:
                raise JournalCorruptError(f"Invalid action on line {number}: {e}", tag=tag, line=number) from e
        return run

    def _load_legacy(self, text: str, tag: str) -> MigrationRun:
        try:
            data = json.loads(text)
            actions = []
            for entry in data.get("actions", []):
                # Older journals also kept the matched document on dry-run and failed updates
                if not (entry.get("action") == ActionKind.UPDATE and entry.get("status") == ActionStatus.SUCCESS):
                    entry = {k: v for k, v in entry.items() if k != "previous"}
                # ... and stored bare keys without their collection
                raw_id = entry.get("_id")
                if raw_id is not None and ":" not in str(raw_id):
                    entry = {**entry, "_id": str(RecordId(table=entry["collection"], id=raw_id))}
                if isinstance(entry.get("previous"), dict):
                    entry["previous"] = {k: v for k, v in entry["previous"].items() if k != "_id"}
                actions.append(ActionRecord.from_json_dict(entry))
            return MigrationRun(tag=data["tag"], created_at=data["createdAt"], actions=actions)
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError, ValueError) as e:
            raise JournalCorruptError(f"Invalid legacy journal: {e}", tag=tag) from e


__all__ = ["JournalRecorder", "JournalStore", "journal_filename"]
