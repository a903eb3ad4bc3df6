"""
Logging configuration for filestream.

Library modules only ever call logging.getLogger(__name__); nothing is
emitted until an application installs handlers. setup_logging() is the
helper for applications that want the standard layout:

All logs go to file: <log_dir>/filestream-YYYY-MM-DD.log (new file each day)
Console logging to stderr can be enabled via console=True.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from filestream.config import get_settings

LOGGER_NAME = "filestream"


class FlushingHandler(logging.handlers.TimedRotatingFileHandler):
    """Handler that flushes after every emit for immediate visibility."""

    def emit(self, record):
        super().emit(record)
        self.flush()


def setup_logging(
    log_dir: Optional[Path] = None,
    level: Optional[int] = None,
    backup_count: int = 30,  # Keep 30 days of logs
    console: bool = False,
) -> logging.Logger:
    """
    Set up file-based logging for filestream with daily rotation.

    Args:
        log_dir: Directory for log files (default: ./.filestream/logs)
        level: Logging level (default: FILESTREAM_LOG_LEVEL, INFO if unset)
        backup_count: Number of daily backup files to keep (default: 30 days)
        console: If True, also log to stderr

    Returns:
        Configured logger instance
    """
    if log_dir is None:
        log_dir = Path.cwd() / ".filestream" / "logs"
    if level is None:
        level = get_settings().log_level

    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Check existing handlers to avoid duplicates
    has_file_handler = any(
        isinstance(h, logging.handlers.TimedRotatingFileHandler)
        for h in logger.handlers
    )
    has_console_handler = any(
        isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
        for h in logger.handlers
    )

    if has_file_handler and (not console or has_console_handler):
        return logger

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if not has_file_handler:
        log_file = log_dir / f"filestream-{datetime.now().strftime('%Y-%m-%d')}.log"
        file_handler = FlushingHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info(f"Logging initialized: {log_file} (level {logging.getLevelName(level)})")

    if console and not has_console_handler:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
        logger.debug("Console logging enabled")

    return logger

