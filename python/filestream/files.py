"""
Path-level file streams.

Each function opens the file itself and closes it when the stream ends,
fails, or is cancelled:

    read_all     whole file, chunk by chunk
    read_range   bytes [start, end)
    tail         whole file, then whatever gets appended, forever
    write_all    consume chunks into a file (create/truncate by default)

The generators are async generators; wrap them in contextlib.aclosing()
when breaking out of a loop early so the handle is released right away.
"""

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Iterable, Optional

from filestream.blocking import Blocker
from filestream.handle import PathLike, open_handle
from filestream.reader import (
    check_range,
    read_all_from_handle,
    read_range_from_handle,
)
from filestream.tail import Sleep, check_tail_args, tail_from_handle
from filestream.types import DEFAULT_WRITE_FLAGS, OpenFlag, TruncationPolicy
from filestream.writer import Chunks, check_chunks, write_all_to_handle

logger = logging.getLogger(__name__)

_READ_FLAGS = (OpenFlag.READ,)


async def read_all(
    path: PathLike, chunk_size: int, blocker: Optional[Blocker] = None
) -> AsyncIterator[bytes]:
    """Stream the whole file at path in chunks of at most chunk_size bytes."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    async with open_handle(path, _READ_FLAGS, blocker) as handle:
        async with aclosing(read_all_from_handle(handle, chunk_size)) as chunks:
            async for chunk in chunks:
                yield chunk


async def read_range(
    path: PathLike,
    chunk_size: int,
    start: int,
    end: int,
    blocker: Optional[Blocker] = None,
) -> AsyncIterator[bytes]:
    """
    Stream bytes [start, end) of the file at path.

    `start` is inclusive, `end` is exclusive, so start=0, end=2 reads two
    bytes. Output stops early only if the file is shorter than `end`.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    check_range(start, end)
    async with open_handle(path, _READ_FLAGS, blocker) as handle:
        batch = read_range_from_handle(handle, chunk_size, start, end)
        async with aclosing(batch) as chunks:
            async for chunk in chunks:
                yield chunk


async def tail(
    path: PathLike,
    chunk_size: int,
    offset: int = 0,
    poll_delay: float = 1.0,
    blocker: Optional[Blocker] = None,
    sleep: Sleep = asyncio.sleep,
    on_truncate: TruncationPolicy = TruncationPolicy.IGNORE,
) -> AsyncIterator[bytes]:
    """
    Stream the file at path from offset, then keep polling for new bytes.

    Waits poll_delay seconds whenever a poll finds nothing new. Never ends
    on its own.
    """
    check_tail_args(chunk_size, offset, poll_delay)
    async with open_handle(path, _READ_FLAGS, blocker) as handle:
        logger.debug(f"Tailing {handle.path} from offset {offset} every {poll_delay}s")
        follower = tail_from_handle(
            handle, chunk_size, offset, poll_delay, sleep=sleep, on_truncate=on_truncate
        )
        async with aclosing(follower) as chunks:
            async for chunk in chunks:
                yield chunk


async def write_all(
    path: PathLike,
    chunks: Chunks,
    flags: Iterable[OpenFlag] = DEFAULT_WRITE_FLAGS,
    blocker: Optional[Blocker] = None,
) -> int:
    """
    Write every chunk to the file at path, in order.

    WRITE is always added to flags. With APPEND, writing starts at the
    file's size when it was opened; otherwise at offset 0.

    Returns:
        Total number of bytes written
    """
    check_chunks(chunks)
    flags = frozenset(flags) | {OpenFlag.WRITE}
    async with open_handle(path, flags, blocker) as handle:
        written = await write_all_to_handle(chunks, handle, flags)
    logger.debug(f"Wrote {written} bytes to {path}")
    return written
