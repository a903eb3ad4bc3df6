"""
Offloading of blocking filesystem calls.

Every open/read/write/size/close call and every watch poll runs on a
dedicated thread pool so the event loop never blocks on disk or on the
notification facility. A Blocker is passed explicitly into each
operation; when none is given the process-wide default_blocker() is used.
"""

import asyncio
import functools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from filestream.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Blocker:
    """
    Thread pool reserved for blocking work.

    Example Usage:
    --------------
    >>> async with Blocker(max_workers=4) as blocker:
    ...     size = await blocker.run(os.path.getsize, "data.bin")
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        thread_name_prefix: str = "filestream-blocking",
    ) -> None:
        if max_workers is None:
            max_workers = get_settings().blocking_threads
        if max_workers < 2:
            # A pending watch poll occupies one worker until its timeout
            raise ValueError("Blocker needs at least 2 worker threads")
        self._max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._shutdown = False

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    async def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run fn(*args, **kwargs) on the pool and await its result."""
        if self._shutdown:
            raise RuntimeError("Blocker has been shut down")
        loop = asyncio.get_running_loop()
        if kwargs:
            fn = functools.partial(fn, **kwargs)
        return await loop.run_in_executor(self._executor, fn, *args)

    def submit(self, fn: Callable[..., T], *args: Any) -> "Future[T]":
        """Schedule fn(*args) on the pool without awaiting it (fire and forget)."""
        if self._shutdown:
            raise RuntimeError("Blocker has been shut down")
        return self._executor.submit(fn, *args)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release the worker threads (idempotent)."""
        if self._shutdown:
            return
        self._shutdown = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug(f"Blocker pool shut down ({self._max_workers} workers)")

    async def __aenter__(self) -> "Blocker":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.shutdown)


_default_blocker: Optional[Blocker] = None
_default_lock = threading.Lock()


def default_blocker() -> Blocker:
    """Process-wide Blocker shared by every operation that isn't given one."""
    global _default_blocker
    with _default_lock:
        if _default_blocker is None or _default_blocker.is_shutdown:
            _default_blocker = Blocker()
            logger.debug(
                f"Created default blocker with {_default_blocker.max_workers} workers"
            )
        return _default_blocker


def resolve_blocker(blocker: Optional[Blocker]) -> Blocker:
    return blocker if blocker is not None else default_blocker()
