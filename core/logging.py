"""Console and file logging for diagnostic passes."""

from __future__ import annotations

import atexit
import logging
import logging.handlers
from pathlib import Path
import queue

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

LOGGER_NAME = "bootdoctor"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging() -> logging.Logger:
    """Return the package logger with a single rich console handler on stderr."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
    logger.propagate = False
    return logger


logger = setup_logging()


class _FileLogging:
    """Queue-backed file sink; records are written off the calling thread."""

    def __init__(self) -> None:
        self.path: Path | None = None
        self.handler: logging.Handler | None = None
        self.listener: logging.handlers.QueueListener | None = None

    def start(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

        records: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
        self.handler = logging.handlers.QueueHandler(records)
        self.listener = logging.handlers.QueueListener(records, file_handler)
        logger.addHandler(self.handler)
        self.listener.start()
        self.path = path

    def stop(self) -> None:
        if self.handler is not None:
            logger.removeHandler(self.handler)
            self.handler = None
        if self.listener is not None:
            self.listener.stop()
            for handler in self.listener.handlers:
                handler.close()
            self.listener = None
        self.path = None


_file_logging = _FileLogging()
atexit.register(_file_logging.stop)


def set_level(level_name: str) -> None:
    """Set the logger level from a name; unknown names fall back to INFO."""

    level = logging.getLevelName(level_name.upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)


def enable_file_logging(log_path: Path) -> None:
    """Also write every record to ``log_path``, replacing any earlier file sink."""

    log_path = log_path.expanduser()
    if _file_logging.path == log_path:
        return
    _file_logging.stop()
    _file_logging.start(log_path)


def disable_file_logging() -> None:
    """Flush and detach the file sink, if any."""

    _file_logging.stop()


def log_error(message: str) -> None:
    logger.error(Text(message, style="bold red"))


def log_info(message: str, style: str = "bold white") -> None:
    logger.info(Text(message, style=style))
