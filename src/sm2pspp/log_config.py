"""Logging setup for sm2pspp.

Converted files usually live below the user's home directory, so log lines
get long and leak the account name.  :class:`PathFilter` rewrites that
prefix to ``~``.  :func:`configure_logging` sets the root level and, when a
log directory is configured, adds a size-rotated ``sm2pspp.log``.

Only stdlib modules are used.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

LOG_FILE_NAME = "sm2pspp.log"

_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class PathFilter(logging.Filter):
    """Replace the home directory prefix in messages and arguments with ``~``."""

    def __init__(self, home: Optional[str] = None) -> None:
        super().__init__()
        self.home = home or str(Path.home())

    def _shorten(self, value: Any) -> Any:
        if not isinstance(value, str) or not self.home or self.home == os.sep:
            return value
        return value.replace(self.home, "~")

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._shorten(record.msg)
        args = record.args
        if isinstance(args, dict):
            record.args = {key: self._shorten(val) for key, val in args.items()}
        elif isinstance(args, tuple):
            record.args = tuple(self._shorten(val) for val in args)
        return True


def _rotating_handler(
    log_dir: str, level: int, max_bytes: int, backup_count: int
) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE_NAME),
        maxBytes=max_bytes,
        backupCount=backup_count,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def configure_logging(
    log_dir: Optional[str] = None,
    *,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    level: Optional[str] = None,
) -> None:
    """Set the root log level and optionally log to a rotating file.

    :param log_dir: Directory for ``sm2pspp.log``.  Reads ``SM2PSPP_LOG_DIR``
        when not given; without either no file is written.
    :param max_bytes: Size at which the log file is rotated (default 1 MB).
    :param backup_count: Rotated files kept (default 3).
    :param level: Level name.  Reads ``SM2PSPP_LOG_LEVEL``, then defaults to
        ``"WARNING"``.  Unknown names mean ``WARNING``.
    """
    log_dir = log_dir or os.environ.get("SM2PSPP_LOG_DIR")
    level_name = (level or os.environ.get("SM2PSPP_LOG_LEVEL") or "WARNING").upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.WARNING

    root = logging.getLogger()
    root.setLevel(log_level)

    if log_dir and not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        root.addHandler(_rotating_handler(log_dir, log_level, max_bytes, backup_count))

    path_filter = PathFilter()
    for handler in root.handlers:
        if not any(isinstance(f, PathFilter) for f in handler.filters):
            handler.addFilter(path_filter)
