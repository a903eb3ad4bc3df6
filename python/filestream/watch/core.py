"""
Watcher: owns a watchdog observer and turns its callbacks into an
async stream of WatchEvents.

Lifecycle: created (observer running, nothing watched) -> registered
(one or more watch() calls) -> closed. watch() may be called again at any
time before close().

events() polls the event buffer on a Blocker worker with poll_timeout, so
a cancelled consumer is noticed within one poll_timeout at most. A poll
that outlives its consumer is picked up by the next events() iteration,
and events drained but not yet yielded wait in a backlog, so cancelling
a consumer never drops events.
"""

import asyncio
import logging
import os
from collections import deque
from contextlib import aclosing, asynccontextmanager
from typing import AsyncIterator, Callable, Iterable, Optional, Union

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from filestream.blocking import Blocker, resolve_blocker
from filestream.config import get_settings
from filestream.errors import WatchPollError, WatchRegistrationError
from filestream.scope import scoped
from filestream.types import (
    WatchEvent,
    WatchEventType,
    WatchModifier,
    WatchRegistration,
)
from filestream.watch.buffer import EventBuffer
from filestream.watch.registry import WatchRegistry, build_registration

logger = logging.getLogger(__name__)

ObserverFactory = Callable[[], BaseObserver]


def check_poll_timeout(poll_timeout: float) -> None:
    if poll_timeout <= 0:
        raise ValueError(f"poll_timeout must be > 0, got {poll_timeout}")


class Watcher:
    """
    File system watcher producing a lazy, unbounded event stream.

    Example Usage:
    --------------
    >>> async with watcher() as w:
    ...     await w.watch(Path("/var/log"), [WatchEventType.CREATED])
    ...     await w.watch(Path("/etc/hosts"), [WatchEventType.MODIFIED])
    ...     async for event in w.events(poll_timeout=0.5):
    ...         print(event.type, event.path)
    """

    def __init__(
        self,
        blocker: Optional[Blocker] = None,
        observer_factory: Optional[ObserverFactory] = None,
        queue_size: Optional[int] = None,
    ) -> None:
        """Build a watcher (not started). Prefer Watcher.create() or watcher()."""
        self._blocker = resolve_blocker(blocker)
        self._observer = (observer_factory or Observer)()
        self._buffer = EventBuffer(queue_size or get_settings().watch_queue_size)
        self._registry = WatchRegistry(self._observer, self._buffer)
        self._started = False
        self._closed = False
        # Poll still running on a worker after its consumer went away
        self._pending_poll: Optional[asyncio.Future] = None
        self._backlog: deque[WatchEvent] = deque()

    @classmethod
    async def create(
        cls,
        blocker: Optional[Blocker] = None,
        observer_factory: Optional[ObserverFactory] = None,
        queue_size: Optional[int] = None,
    ) -> "Watcher":
        """Build a watcher and start its observer thread."""
        w = cls(blocker, observer_factory, queue_size)
        await w._start()
        return w

    async def _start(self) -> None:
        if self._started:
            raise RuntimeError("Watcher is already running")
        try:
            await self._blocker.run(self._observer.start)
        except (OSError, RuntimeError) as e:
            raise WatchRegistrationError(f"Cannot start file system observer: {e}") from e
        self._started = True
        logger.debug(f"Started {type(self._observer).__name__}")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def registrations(self) -> list[WatchRegistration]:
        return self._registry.registrations

    def is_running(self) -> bool:
        return self._started and not self._closed and self._observer.is_alive()

    async def watch(
        self,
        path: Union[str, os.PathLike],
        types: Iterable[WatchEventType] = (),
        modifiers: Iterable[WatchModifier] = (),
    ) -> WatchRegistration:
        """
        Register interest in path.

        Args:
            path: File or directory to watch
            types: Event types to report (empty means all)
            modifiers: Registration modifiers, e.g. WatchModifier.FILE_TREE

        Raises:
            WatchRegistrationError: path missing, modifier unsupported, watcher
                closed, or the native facility refused the watch
        """
        if self._closed:
            raise WatchRegistrationError("Watcher is closed", path)
        if not self._started:
            await self._start()

        def _register() -> WatchRegistration:
            return self._registry.register(build_registration(path, types, modifiers))

        return await self._blocker.run(_register)

    async def events(self, poll_timeout: float = 1.0) -> AsyncIterator[WatchEvent]:
        """
        Yield events as they arrive, forever.

        Raises:
            WatchPollError: the watcher is closed or its observer died
        """
        check_poll_timeout(poll_timeout)

        while True:
            while self._backlog:
                yield self._backlog.popleft()
            if self._closed:
                raise WatchPollError("Watcher is closed")
            if not self._observer.is_alive():
                raise WatchPollError("File system observer thread is not running")
            self._backlog.extend(await self._next_batch(poll_timeout))

    async def _next_batch(self, poll_timeout: float) -> list[WatchEvent]:
        poll = self._pending_poll
        if poll is None:
            poll = asyncio.ensure_future(
                self._blocker.run(self._buffer.poll, poll_timeout)
            )
            self._pending_poll = poll
        try:
            # Shielded: a cancelled consumer leaves the poll for the next one
            batch = await asyncio.shield(poll)
        except RuntimeError as e:
            self._pending_poll = None
            raise WatchPollError(f"Cannot poll for events: {e}") from e
        self._pending_poll = None
        return batch

    def _shutdown(self) -> None:
        self._registry.clear()
        if self._started:
            self._observer.stop()
            self._observer.join()

    async def close(self) -> None:
        """Drop all registrations and stop the observer. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self._pending_poll = None
        await self._blocker.run(self._shutdown)
        logger.debug(f"Stopped {type(self._observer).__name__}")


@asynccontextmanager
async def watcher(
    blocker: Optional[Blocker] = None,
    observer_factory: Optional[ObserverFactory] = None,
    queue_size: Optional[int] = None,
) -> AsyncIterator[Watcher]:
    """Scoped Watcher: closed exactly once when the block exits."""
    w = await Watcher.create(blocker, observer_factory, queue_size)
    async with scoped(w, w.close, "watcher") as scoped_watcher:
        yield scoped_watcher


async def watch(
    path: Union[str, os.PathLike],
    types: Iterable[WatchEventType] = (),
    modifiers: Iterable[WatchModifier] = (),
    poll_timeout: float = 1.0,
    blocker: Optional[Blocker] = None,
    observer_factory: Optional[ObserverFactory] = None,
) -> AsyncIterator[WatchEvent]:
    """
    Watch a single path.

    Creates a watcher, registers path, and streams its events; the watcher
    is released when the generator is closed or its task is cancelled.
    """
    check_poll_timeout(poll_timeout)
    async with watcher(blocker, observer_factory) as w:
        await w.watch(path, types, modifiers)
        async with aclosing(w.events(poll_timeout)) as events:
            async for event in events:
                yield event
