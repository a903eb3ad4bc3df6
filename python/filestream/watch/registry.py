"""
WatchRegistry: watched paths and their native watchdog watches.

Each registration is scheduled on the observer with its own handler, so
several registrations (even on the same directory) keep their own event
filters. Calls here block and are run through the Watcher's Blocker.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Iterable, Union

from watchdog.observers.api import BaseObserver, ObservedWatch

from filestream.errors import WatchRegistrationError
from filestream.types import (
    ALL_EVENT_TYPES,
    WatchEventType,
    WatchModifier,
    WatchRegistration,
)
from filestream.watch.buffer import EventBuffer
from filestream.watch.handlers import RegistrationEventHandler

logger = logging.getLogger(__name__)


def build_registration(
    path: Union[str, os.PathLike],
    types: Iterable[WatchEventType] = (),
    modifiers: Iterable[WatchModifier] = (),
) -> WatchRegistration:
    """
    Validate arguments and build a WatchRegistration.

    An empty `types` means every event type.

    Raises:
        WatchRegistrationError: unknown event type or unsupported modifier
    """
    types = frozenset(types)
    modifiers = frozenset(modifiers)
    for event_type in types:
        if not isinstance(event_type, WatchEventType):
            raise WatchRegistrationError(f"Unknown event type: {event_type!r}", path)
    for modifier in modifiers:
        if not isinstance(modifier, WatchModifier):
            raise WatchRegistrationError(f"Unsupported watch modifier: {modifier!r}", path)
    return WatchRegistration(
        path=Path(path).resolve(),
        types=types or ALL_EVENT_TYPES,
        modifiers=modifiers,
    )


class WatchRegistry:
    def __init__(self, observer: BaseObserver, buffer: EventBuffer) -> None:
        self._observer = observer
        self._buffer = buffer
        self._watches: list[tuple[WatchRegistration, ObservedWatch]] = []
        self._lock = threading.Lock()

    @property
    def registrations(self) -> list[WatchRegistration]:
        with self._lock:
            return [registration for registration, _ in self._watches]

    def __len__(self) -> int:
        with self._lock:
            return len(self._watches)

    def register(self, registration: WatchRegistration) -> WatchRegistration:
        """
        Schedule a native watch for registration.

        Raises:
            WatchRegistrationError: path missing, FILE_TREE on a file, or the
                observer rejected the watch
        """
        path = registration.path
        if not path.exists():
            raise WatchRegistrationError(f"Watch path does not exist: {path}", path)

        single_file = not path.is_dir()
        if single_file and registration.recursive:
            raise WatchRegistrationError(
                f"FILE_TREE only applies to directories, not {path}", path
            )

        target = path.parent if single_file else path
        handler = RegistrationEventHandler(registration, self._buffer, single_file)
        try:
            watch = self._observer.schedule(
                handler, str(target), recursive=registration.recursive
            )
        except OSError as e:
            raise WatchRegistrationError(f"Cannot watch {path}: {e}", path) from e

        with self._lock:
            self._watches.append((registration, watch))
        logger.info(
            f"Watching {path} for {sorted(t.value for t in registration.types)}"
            + (" (recursive)" if registration.recursive else "")
        )
        return registration

    def clear(self) -> None:
        """Unschedule every native watch."""
        with self._lock:
            watches, self._watches = self._watches, []
        for registration, watch in watches:
            try:
                self._observer.unschedule(watch)
            except KeyError:
                # Already gone if an emitter shut itself down
                logger.debug(f"Watch for {registration.path} was already unscheduled")
