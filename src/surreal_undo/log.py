"""
Logging sink for the command line tools.

Library modules only log through ``logging.getLogger(__name__)``; this module
attaches the console and file handlers when a command starts.
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_MARK = "_surreal_undo_handler"


def configure_logging(level: int = logging.INFO, log_file: Path | str | None = None) -> logging.Logger:
    """
    Attach console and optional file handlers to the package logger.

    Calling it again replaces the handlers it installed earlier, so repeated
    CLI invocations in one process do not duplicate lines.

    Raises:
        OSError: If the log file cannot be opened; installed handlers are left as they were
    """
    handlers: list[logging.Handler] = []
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    handlers.insert(0, logging.StreamHandler(sys.stderr))

    logger = logging.getLogger("surreal_undo")
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARK, True)
        logger.addHandler(handler)

    return logger
