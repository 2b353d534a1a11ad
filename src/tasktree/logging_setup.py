# src/tasktree/logging_setup.py

"""Root logger wiring for the console app: filtered stderr plus a full log file."""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from pathlib import Path

LOG_FILE_NAME = "tasktree.log"

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Minimum console level per logger prefix. Longest matching prefix wins.
_CONSOLE_FLOORS: Mapping[str, int] = {
    "tasktree.": logging.NOTSET,
    "tasktree.history.": logging.INFO,
}


class _ConsoleFilter(logging.Filter):
    """Let tasktree records through; other loggers only at ERROR."""

    def __init__(self, floors: Mapping[str, int] = _CONSOLE_FLOORS, default: int = logging.ERROR):
        super().__init__()
        self._floors = sorted(floors.items(), key=lambda kv: len(kv[0]), reverse=True)
        self._default = default

    def floor_for(self, name: str) -> int:
        for prefix, level in self._floors:
            if name.startswith(prefix):
                return level
        return self._default

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.floor_for(record.name)


def _handler(handler: logging.Handler, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/tasktree",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """Replace root handlers and return the log file path. Idempotent."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for existing in list(root.handlers):
        root.removeHandler(existing)

    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)

    console = _handler(logging.StreamHandler(sys.stderr), console_level, fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)
    root.addHandler(_handler(logging.FileHandler(log_file, encoding="utf-8"), file_level, fmt))

    # warnings.warn() goes through "py.warnings", which the console filter holds at ERROR.
    logging.captureWarnings(True)
    return log_file
