"""
Bounded hand-off between watchdog's threads and the polling consumer.

watchdog delivers events on its emitter threads; Watcher.events() drains
them from a worker thread with a timeout. When the buffer is full, new
events are dropped and the affected registration is marked as overflowed,
which turns into a single OVERFLOW event on the next poll.
"""

import logging
import queue
import threading
from pathlib import Path

from filestream.types import WatchEvent, WatchEventType

logger = logging.getLogger(__name__)


class EventBuffer:
    def __init__(self, maxsize: int) -> None:
        if maxsize < 1:
            raise ValueError("EventBuffer maxsize must be >= 1")
        self._queue: "queue.Queue[WatchEvent]" = queue.Queue(maxsize=maxsize)
        self._overflowed: dict[Path, None] = {}
        self._lock = threading.Lock()

    def put(self, event: WatchEvent, registered_path: Path) -> None:
        """Called from watchdog threads. Never blocks."""
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                if registered_path not in self._overflowed:
                    logger.warning(
                        f"Watch buffer full ({self._queue.maxsize} events), "
                        f"dropping events for {registered_path}"
                    )
                self._overflowed[registered_path] = None

    def poll(self, timeout: float) -> list[WatchEvent]:
        """
        Wait up to timeout for at least one event, then drain what's there.

        Returns an empty list if nothing arrived in time.
        """
        events: list[WatchEvent] = []
        try:
            events.append(self._queue.get(timeout=timeout))
        except queue.Empty:
            pass
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                break

        with self._lock:
            overflowed = list(self._overflowed)
            self._overflowed.clear()
        events.extend(WatchEvent(WatchEventType.OVERFLOW, path) for path in overflowed)
        return events

    def __len__(self) -> int:
        return self._queue.qsize()
