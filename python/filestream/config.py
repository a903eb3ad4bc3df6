"""
Environment-driven settings.

All knobs are optional; unset variables fall back to the defaults below.

    FILESTREAM_BLOCKING_THREADS   worker threads of the default blocker (16)
    FILESTREAM_WATCH_QUEUE_SIZE   buffered events per watcher (10000)
    FILESTREAM_LOG_LEVEL          level used by setup_logging (INFO)
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

ENV_PREFIX = "FILESTREAM_"

DEFAULT_BLOCKING_THREADS = 16
DEFAULT_WATCH_QUEUE_SIZE = 10_000
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class Settings:
    blocking_threads: int = DEFAULT_BLOCKING_THREADS
    watch_queue_size: int = DEFAULT_WATCH_QUEUE_SIZE
    log_level: int = logging.INFO


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{ENV_PREFIX}{name} must be >= 1, got {value}")
    return value


def _log_level() -> int:
    raw = os.getenv(ENV_PREFIX + "LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(raw)
    if not isinstance(level, int):
        raise ValueError(f"{ENV_PREFIX}LOG_LEVEL is not a logging level: {raw!r}")
    return level


def load_settings() -> Settings:
    """Read settings from the environment (no caching)."""
    return Settings(
        blocking_threads=_positive_int("BLOCKING_THREADS", DEFAULT_BLOCKING_THREADS),
        watch_queue_size=_positive_int("WATCH_QUEUE_SIZE", DEFAULT_WATCH_QUEUE_SIZE),
        log_level=_log_level(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read once on first use."""
    return load_settings()
