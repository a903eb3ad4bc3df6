"""
Filesystem watching.

Watcher wraps a watchdog observer; watch() is the single-path shortcut.
"""

from filestream.watch.buffer import EventBuffer
from filestream.watch.core import Watcher, watch, watcher
from filestream.watch.handlers import RegistrationEventHandler
from filestream.watch.registry import WatchRegistry, build_registration

__all__ = [
    "EventBuffer",
    "RegistrationEventHandler",
    "WatchRegistry",
    "Watcher",
    "build_registration",
    "watch",
    "watcher",
]
