"""Tests for run configuration and logging setup."""

import logging
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from surreal_undo.config import DEFAULT_JOURNAL_DIR, MigrationConfig
from surreal_undo.log import configure_logging


class TestMigrationConfig:
    def test_defaults(self) -> None:
        config = MigrationConfig()

        assert config.url == "http://localhost:8000"
        assert config.protocol == "cbor"
        assert config.dry_run is False
        assert config.journal_dir == Path(DEFAULT_JOURNAL_DIR)
        assert config.log_file is None

    def test_paths_are_coerced(self) -> None:
        config = MigrationConfig(journal_dir="runs", log_file="out.log")  # type: ignore[arg-type]
        assert config.journal_dir == Path("runs")
        assert config.log_file == Path("out.log")

    def test_frozen(self) -> None:
        config = MigrationConfig()
        with pytest.raises(FrozenInstanceError):
            config.dry_run = True  # type: ignore[misc]

    def test_with_dry_run(self) -> None:
        config = MigrationConfig(namespace="prod")
        preview = config.with_dry_run(True)

        assert preview.dry_run is True
        assert preview.namespace == "prod"
        assert config.dry_run is False


class TestConfigureLogging:
    def test_file_handler_and_format(self, tmp_path: Path) -> None:
        log_file = tmp_path / "migration.log"
        logger = configure_logging(logging.INFO, log_file)

        logging.getLogger("surreal_undo.migrations.runner").info("Tag: abc")
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip()
        assert line.endswith("INFO: Tag: abc")
        assert line.startswith("[")

    def test_repeated_calls_replace_handlers(self, tmp_path: Path) -> None:
        configure_logging(logging.INFO, tmp_path / "a.log")
        logger = configure_logging(logging.DEBUG)

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_unopenable_log_file_keeps_previous_handlers(self, tmp_path: Path) -> None:
        logger = configure_logging(logging.INFO, tmp_path / "a.log")
        before = list(logger.handlers)

        with pytest.raises(OSError):
            configure_logging(logging.DEBUG, tmp_path / "missing" / "b.log")

        assert logger.handlers == before
        assert logger.level == logging.INFO
