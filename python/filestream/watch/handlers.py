"""
Internal event handler for watchdog.

Receives raw watchdog events for one registration, converts them into
WatchEvents, drops the ones the registration didn't ask for, and hands
the rest to the EventBuffer.
"""

import os
from pathlib import Path
from typing import Iterator

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)

from filestream.types import WatchEvent, WatchEventType, WatchRegistration
from filestream.watch.buffer import EventBuffer

_SIMPLE_TYPES = {
    EVENT_TYPE_CREATED: WatchEventType.CREATED,
    EVENT_TYPE_MODIFIED: WatchEventType.MODIFIED,
    EVENT_TYPE_DELETED: WatchEventType.DELETED,
}


def _to_path(raw) -> Path:
    return Path(os.fsdecode(raw))


def translate(event: FileSystemEvent) -> Iterator[tuple[WatchEventType, Path]]:
    """
    Map a watchdog event to (type, path) pairs.

    Moves become DELETED for the source plus CREATED for the destination.
    Open/close notifications have no counterpart and produce nothing.
    """
    if event.event_type in _SIMPLE_TYPES:
        yield _SIMPLE_TYPES[event.event_type], _to_path(event.src_path)
    elif event.event_type == EVENT_TYPE_MOVED:
        yield WatchEventType.DELETED, _to_path(event.src_path)
        yield WatchEventType.CREATED, _to_path(event.dest_path)


class RegistrationEventHandler(FileSystemEventHandler):
    """
    Routes events for a single WatchRegistration into a buffer.

    When the registered path is a file, watchdog watches its parent
    directory; only events for the file itself get through.
    """

    def __init__(
        self, registration: WatchRegistration, buffer: EventBuffer, single_file: bool
    ) -> None:
        super().__init__()
        self.registration = registration
        self._buffer = buffer
        self._single_file = single_file

    def _in_scope(self, path: Path) -> bool:
        root = self.registration.path
        if self._single_file:
            return path == root
        if self.registration.recursive:
            return path == root or root in path.parents
        return path == root or path.parent == root

    def dispatch(self, event: FileSystemEvent) -> None:
        """Dispatch file system events to the buffer."""
        for event_type, path in translate(event):
            if not self._in_scope(path):
                continue
            if not self.registration.accepts(event_type):
                continue
            self._buffer.put(WatchEvent(event_type, path), self.registration.path)
