"""
FileHandle: one open file descriptor with positioned I/O.

All descriptor calls go through a Blocker so they never run on the event
loop thread. Reads and writes are positional (pread/pwrite) and never
move a shared file position, so the caller owns offset bookkeeping.
"""

import asyncio
import functools
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional, Union

from filestream.blocking import Blocker, resolve_blocker
from filestream.errors import FileIOError, OpenError
from filestream.scope import scoped
from filestream.types import OpenFlag

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

_MODIFIER_BITS = {
    OpenFlag.CREATE: os.O_CREAT,
    OpenFlag.CREATE_NEW: os.O_CREAT | os.O_EXCL,
    OpenFlag.APPEND: os.O_APPEND,
    OpenFlag.TRUNCATE: os.O_TRUNC,
    OpenFlag.SYNC: getattr(os, "O_SYNC", 0),
    OpenFlag.DSYNC: getattr(os, "O_DSYNC", getattr(os, "O_SYNC", 0)),
}


def os_open_flags(flags: Iterable[OpenFlag]) -> int:
    """
    Translate OpenFlags into os.open() bits.

    Raises:
        OpenError: APPEND combined with TRUNCATE, or APPEND on a read-only handle
    """
    flags = frozenset(flags)
    readable = OpenFlag.READ in flags
    writable = bool(flags & {OpenFlag.WRITE, OpenFlag.APPEND})

    if OpenFlag.APPEND in flags and OpenFlag.TRUNCATE in flags:
        raise OpenError("APPEND cannot be combined with TRUNCATE")
    if OpenFlag.APPEND in flags and readable and OpenFlag.WRITE not in flags:
        raise OpenError("APPEND requires WRITE when READ is requested")

    if readable and writable:
        bits = os.O_RDWR
    elif writable:
        bits = os.O_WRONLY
    else:
        bits = os.O_RDONLY

    for flag in flags:
        bits |= _MODIFIER_BITS.get(flag, 0)
    # Windows would otherwise translate newlines
    bits |= getattr(os, "O_BINARY", 0)
    return bits


def _close_fd(fd: int) -> None:
    try:
        os.close(fd)
    except OSError as e:
        logger.warning(f"Failed to close orphaned descriptor {fd}: {e}")
    else:
        logger.debug(f"Closed descriptor {fd} opened by a cancelled caller")


def _close_orphaned_fd(blocker: Blocker, opening: "asyncio.Future[int]") -> None:
    """Done-callback: hand a descriptor nobody owns to the pool for closing."""
    if opening.cancelled() or opening.exception() is not None:
        return
    fd = opening.result()
    try:
        blocker.submit(_close_fd, fd)
    except RuntimeError:
        # Pool already shut down, nothing else can close it
        _close_fd(fd)


class FileHandle:
    """
    Exclusive owner of one open descriptor.

    Use open_handle() rather than constructing this directly; it guarantees
    close() runs exactly once.
    """

    def __init__(
        self, fd: int, path: Path, flags: frozenset[OpenFlag], blocker: Blocker
    ) -> None:
        self._fd = fd
        self._path = path
        self._flags = flags
        self._blocker = blocker
        self._closed = False

    @classmethod
    async def open(
        cls,
        path: PathLike,
        flags: Iterable[OpenFlag] = (OpenFlag.READ,),
        blocker: Optional[Blocker] = None,
    ) -> "FileHandle":
        """
        Open path with the given flags.

        Raises:
            OpenError: path missing, permission denied, invalid flag combination
        """
        path = Path(path)
        flags = frozenset(flags)
        blocker = resolve_blocker(blocker)
        bits = os_open_flags(flags)
        opening = asyncio.ensure_future(blocker.run(os.open, path, bits, 0o666))
        try:
            fd = await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The worker may still hand back a descriptor nobody will own
            opening.add_done_callback(functools.partial(_close_orphaned_fd, blocker))
            raise
        except OSError as e:
            raise OpenError.from_os_error(e, path) from e
        logger.debug(f"Opened {path} (fd={fd}, flags={sorted(f.value for f in flags)})")
        return cls(fd, path, flags, blocker)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def flags(self) -> frozenset[OpenFlag]:
        return self._flags

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self._fd

    def _check_open(self) -> None:
        if self._closed:
            raise FileIOError.closed(self._path)

    async def size(self) -> int:
        """Current size in bytes, queried from the descriptor (never cached)."""
        self._check_open()
        try:
            st = await self._blocker.run(os.fstat, self._fd)
        except OSError as e:
            raise FileIOError.from_os_error(e, self._path, "stat") from e
        return st.st_size

    async def read(self, num_bytes: int, offset: int) -> bytes:
        """
        Read up to num_bytes starting at offset.

        Returns b"" only at end of file.
        """
        self._check_open()
        try:
            return await self._blocker.run(os.pread, self._fd, num_bytes, offset)
        except OSError as e:
            raise FileIOError.from_os_error(e, self._path, "read") from e

    async def write(self, data: bytes, offset: int) -> int:
        """
        Write data at offset.

        Returns the number of bytes actually written, which may be less than
        len(data). A short write is not an error.
        """
        self._check_open()
        try:
            return await self._blocker.run(os.pwrite, self._fd, data, offset)
        except OSError as e:
            raise FileIOError.from_os_error(e, self._path, "write") from e

    async def truncate(self, size: int) -> None:
        """Cut the file down (or extend it with zeros) to size bytes."""
        self._check_open()
        try:
            await self._blocker.run(os.ftruncate, self._fd, size)
        except OSError as e:
            raise FileIOError.from_os_error(e, self._path, "truncate") from e

    async def force(self, metadata: bool = False) -> None:
        """Flush written content (and metadata if requested) to the device."""
        self._check_open()
        sync = os.fsync if metadata or not hasattr(os, "fdatasync") else os.fdatasync
        try:
            await self._blocker.run(sync, self._fd)
        except OSError as e:
            raise FileIOError.from_os_error(e, self._path, "sync") from e

    async def close(self) -> None:
        """Release the descriptor. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._blocker.run(os.close, self._fd)
        except OSError as e:
            raise FileIOError.from_os_error(e, self._path, "close") from e
        logger.debug(f"Closed {self._path} (fd={self._fd})")

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"fd={self._fd}"
        return f"FileHandle({str(self._path)!r}, {state})"


@asynccontextmanager
async def open_handle(
    path: PathLike,
    flags: Iterable[OpenFlag] = (OpenFlag.READ,),
    blocker: Optional[Blocker] = None,
) -> AsyncIterator[FileHandle]:
    """
    Open path and close it when the block exits for any reason.

    >>> async with open_handle("data.bin") as handle:
    ...     size = await handle.size()
    """
    handle = await FileHandle.open(path, flags, blocker)
    async with scoped(handle, handle.close, f"file handle {handle.path}") as h:
        yield h
