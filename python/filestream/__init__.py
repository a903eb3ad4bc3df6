"""
filestream - streaming file I/O and filesystem change notification.

Read files of any size in bounded chunks, follow growing files, write
chunk streams with create/append/overwrite semantics, and watch paths for
changes, all as asyncio streams with blocking calls kept off the event
loop.

Typical usage:
--------------
    from contextlib import aclosing
    from filestream import read_all, tail, write_all, watch, WatchEventType

    async for chunk in read_all("big.bin", chunk_size=64 * 1024):
        digest.update(chunk)

    await write_all("copy.bin", read_all("big.bin", 64 * 1024))

    async with aclosing(watch("config.yaml", [WatchEventType.MODIFIED])) as events:
        async for event in events:
            reload(event.path)
"""

from filestream.blocking import Blocker, default_blocker
from filestream.errors import (
    FileIOError,
    FileStreamError,
    OpenError,
    WatchPollError,
    WatchRegistrationError,
)
from filestream.files import read_all, read_range, tail, write_all
from filestream.handle import FileHandle, open_handle
from filestream.reader import read_all_from_handle, read_range_from_handle
from filestream.tail import tail_from_handle
from filestream.types import (
    ALL_EVENT_TYPES,
    DEFAULT_WRITE_FLAGS,
    OpenFlag,
    TruncationPolicy,
    WatchEvent,
    WatchEventType,
    WatchModifier,
    WatchRegistration,
)
from filestream.watch import Watcher, watch, watcher
from filestream.writer import write_all_to_handle, write_all_to_handle_at_offset

__version__ = "0.1.0"

__all__ = [
    "ALL_EVENT_TYPES",
    "Blocker",
    "DEFAULT_WRITE_FLAGS",
    "FileHandle",
    "FileIOError",
    "FileStreamError",
    "OpenError",
    "OpenFlag",
    "TruncationPolicy",
    "WatchEvent",
    "WatchEventType",
    "WatchModifier",
    "WatchPollError",
    "WatchRegistration",
    "WatchRegistrationError",
    "Watcher",
    "default_blocker",
    "open_handle",
    "read_all",
    "read_all_from_handle",
    "read_range",
    "read_range_from_handle",
    "tail",
    "tail_from_handle",
    "watch",
    "watcher",
    "write_all",
    "write_all_to_handle",
    "write_all_to_handle_at_offset",
]
