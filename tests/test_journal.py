"""Tests for journal persistence and loading."""

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from surreal_undo.exceptions import JournalCorruptError, JournalPersistenceError, MissingJournalError
from surreal_undo.migrations.journal import JournalRecorder, JournalStore, journal_filename
from surreal_undo.migrations.records import ActionKind, ActionRecord, ActionStatus, MigrationRun

NOW = datetime(2026, 10, 18, 9, 15, 2, 123456, tzinfo=timezone.utc)
TAG = "2026-10-18T09_15_02_123456Z"


def make_insert(identifier: str = "y:abc") -> ActionRecord:
    return ActionRecord(
        collection="y",
        kind=ActionKind.INSERT,
        status=ActionStatus.SUCCESS,
        identifier=identifier,
        document={"name": "Y1", "createdAt": NOW},
    )


def make_update(identifier: str = "z:1") -> ActionRecord:
    return ActionRecord(
        collection="z",
        kind=ActionKind.UPDATE,
        status=ActionStatus.SUCCESS,
        identifier=identifier,
        update={"status": "new"},
        previous={"id": identifier, "status": "old"},
    )


def write_lines(journal_dir: Path, lines: list[str], tag: str = TAG) -> Path:
    journal_dir.mkdir(parents=True, exist_ok=True)
    path = journal_dir / journal_filename(tag)
    path.write_text("".join(lines), encoding="utf-8")
    return path


def header_line(tag: str = TAG) -> str:
    return json.dumps({"tag": tag, "createdAt": "2026-10-18T09:15:02.123456Z"}) + "\n"


class TestJournalRecorder:
    def test_writes_header_and_one_line_per_action(self, journal_dir: Path) -> None:
        run = MigrationRun.start(NOW)
        with JournalRecorder(journal_dir, run) as recorder:
            recorder.record(make_insert())
            recorder.record(make_update())

        lines = recorder.path.read_text(encoding="utf-8").splitlines()
        assert recorder.path == journal_dir / f"migration_{TAG}.jsonl"
        assert len(lines) == 3
        assert json.loads(lines[0]) == {"tag": TAG, "createdAt": "2026-10-18T09:15:02.123456Z"}
        assert json.loads(lines[1])["action"] == "insert"
        assert json.loads(lines[2])["previous"] == {"id": "z:1", "status": "old"}
        assert len(run.actions) == 2

    def test_record_is_on_disk_before_close(self, journal_dir: Path) -> None:
        run = MigrationRun.start(NOW)
        with JournalRecorder(journal_dir, run) as recorder:
            recorder.record(make_insert())
            loaded = JournalStore(journal_dir).load(TAG)
            assert loaded.actions == [make_insert()]

    def test_existing_journal_is_never_overwritten(self, journal_dir: Path) -> None:
        with JournalRecorder(journal_dir, MigrationRun.start(NOW)) as recorder:
            recorder.record(make_insert())

        with pytest.raises(JournalPersistenceError, match="already exists"):
            JournalRecorder(journal_dir, MigrationRun.start(NOW)).open()

        assert len(JournalStore(journal_dir).load(TAG).actions) == 1

    def test_unwritable_directory(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")
        with pytest.raises(JournalPersistenceError):
            JournalRecorder(blocker / "migrations", MigrationRun.start(NOW)).open()

    def test_record_requires_open(self, journal_dir: Path) -> None:
        recorder = JournalRecorder(journal_dir, MigrationRun.start(NOW))
        with pytest.raises(JournalPersistenceError, match="not open"):
            recorder.record(make_insert())

    def test_unserialisable_action(self, journal_dir: Path) -> None:
        action = ActionRecord(
            collection="y",
            kind=ActionKind.INSERT,
            status=ActionStatus.DRY_RUN,
            document={"born": date(2024, 1, 1)},
        )

        with JournalRecorder(journal_dir, MigrationRun.start(NOW)) as recorder:
            with pytest.raises(JournalPersistenceError, match="Cannot journal"):
                recorder.record(action)
            recorder.record(make_insert())

        assert JournalStore(journal_dir).load(TAG).actions == [make_insert()]


class TestJournalStore:
    def test_load_roundtrip(self, journal_dir: Path) -> None:
        run = MigrationRun.start(NOW)
        with JournalRecorder(journal_dir, run) as recorder:
            recorder.record(make_insert())
            recorder.record(make_update())

        loaded = JournalStore(journal_dir).load(TAG)
        assert loaded.tag == TAG
        assert loaded.created_at == NOW
        assert loaded.actions == run.actions
        assert loaded.actions[0].document == {"name": "Y1", "createdAt": NOW}

    def test_missing_journal(self, journal_dir: Path) -> None:
        store = JournalStore(journal_dir)
        assert not store.exists(TAG)
        with pytest.raises(MissingJournalError, match="not found"):
            store.load(TAG)

    def test_unsafe_tag(self, journal_dir: Path) -> None:
        store = JournalStore(journal_dir)
        assert not store.exists("../secrets")
        with pytest.raises(MissingJournalError, match="Invalid tag"):
            store.load("../secrets")

    def test_truncated_last_line_is_dropped(self, journal_dir: Path, caplog: pytest.LogCaptureFixture) -> None:
        good = json.dumps(make_insert().to_json_dict()) + "\n"
        write_lines(journal_dir, [header_line(), good, '{"collection": "z", "act'])

        with caplog.at_level(logging.WARNING):
            run = JournalStore(journal_dir).load(TAG)

        assert run.actions == [make_insert()]
        assert "truncated" in caplog.text

    def test_malformed_inner_line(self, journal_dir: Path) -> None:
        good = json.dumps(make_insert().to_json_dict()) + "\n"
        write_lines(journal_dir, [header_line(), "not json\n", good])

        with pytest.raises(JournalCorruptError) as exc_info:
            JournalStore(journal_dir).load(TAG)
        assert exc_info.value.line == 2
        assert exc_info.value.tag == TAG

    def test_invalid_action(self, journal_dir: Path) -> None:
        bad = json.dumps({"collection": "y", "action": "insert", "status": "success"}) + "\n"
        write_lines(journal_dir, [header_line(), bad])

        with pytest.raises(JournalCorruptError, match="line 2"):
            JournalStore(journal_dir).load(TAG)

    def test_empty_journal(self, journal_dir: Path) -> None:
        write_lines(journal_dir, [])
        with pytest.raises(JournalCorruptError, match="no header"):
            JournalStore(journal_dir).load(TAG)

    def test_tag_mismatch(self, journal_dir: Path) -> None:
        write_lines(journal_dir, [header_line("2020-01-01T00_00_00_000000Z")])
        with pytest.raises(JournalCorruptError, match="belongs to tag"):
            JournalStore(journal_dir).load(TAG)

    def test_list_tags(self, journal_dir: Path) -> None:
        later = "2026-10-19T00_00_00_000000Z"
        write_lines(journal_dir, [header_line(later)], tag=later)
        write_lines(journal_dir, [header_line()])
        (journal_dir / "notes.txt").write_text("ignored")

        assert JournalStore(journal_dir).list_tags() == [TAG, later]

    def test_list_tags_without_directory(self, tmp_path: Path) -> None:
        assert JournalStore(tmp_path / "nowhere").list_tags() == []


class TestLegacyJournal:
    def write_legacy(self, journal_dir: Path, tag: str = "2024-01-05T10_00_00_123Z") -> str:
        journal_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "tag": tag,
            "createdAt": "2024-01-05T10:00:00.123Z",
            "actions": [
                {
                    "collection": "y",
                    "action": "insert",
                    "status": "success",
                    "_id": "659800a1b2c3d4e5f6a7b8c9",
                    "document": {"name": "Y1"},
                },
                {
                    "collection": "z",
                    "action": "update",
                    "status": "dryRun",
                    "_id": "659800a1b2c3d4e5f6a7b8ca",
                    "previous": {"_id": "659800a1b2c3d4e5f6a7b8ca", "status": "old"},
                    "update": {"status": "new"},
                },
                {
                    "collection": "z",
                    "action": "update",
                    "status": "success",
                    "_id": "659800a1b2c3d4e5f6a7b8cb",
                    "previous": {"_id": "659800a1b2c3d4e5f6a7b8cb", "status": "old"},
                    "update": {"status": "new"},
                },
            ],
        }
        (journal_dir / journal_filename(tag, legacy=True)).write_text(json.dumps(data, indent=2))
        return tag

    def test_loads_single_object_format(self, journal_dir: Path) -> None:
        tag = self.write_legacy(journal_dir)
        run = JournalStore(journal_dir).load(tag)

        assert [a.status for a in run.actions] == [ActionStatus.SUCCESS, ActionStatus.DRY_RUN, ActionStatus.SUCCESS]
        assert run.actions[0].identifier == "y:659800a1b2c3d4e5f6a7b8c9"
        assert run.actions[1].previous is None
        assert run.actions[2].previous == {"status": "old"}

    def test_prefers_append_only_file(self, journal_dir: Path) -> None:
        tag = self.write_legacy(journal_dir)
        store = JournalStore(journal_dir)
        assert store.path_for(tag).suffix == ".json"

        write_lines(journal_dir, [header_line(tag)], tag=tag)
        assert store.path_for(tag).suffix == ".jsonl"
        assert store.list_tags() == [tag]

    def test_malformed_legacy(self, journal_dir: Path) -> None:
        journal_dir.mkdir(parents=True)
        tag = "2024-01-05T10_00_00_123Z"
        (journal_dir / journal_filename(tag, legacy=True)).write_text("{not json")

        with pytest.raises(JournalCorruptError, match="legacy"):
            JournalStore(journal_dir).load(tag)
