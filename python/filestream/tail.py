"""
Follow a growing file ("tail -f").

tail_from_handle reads everything between its offset and the current file
size, then sleeps for poll_delay whenever no new bytes showed up and asks
for the size again. The stream never ends by itself; cancel the consuming
task (or aclose() the generator) to stop it.
"""

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable

from filestream.handle import FileHandle
from filestream.reader import read_range_from_handle
from filestream.types import TruncationPolicy

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def check_tail_args(chunk_size: int, offset: int, poll_delay: float) -> None:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
    if poll_delay < 0:
        raise ValueError(f"poll_delay must be >= 0, got {poll_delay}")


async def tail_from_handle(
    handle: FileHandle,
    chunk_size: int,
    offset: int = 0,
    poll_delay: float = 1.0,
    sleep: Sleep = asyncio.sleep,
    on_truncate: TruncationPolicy = TruncationPolicy.IGNORE,
) -> AsyncIterator[bytes]:
    """
    Yield chunks appended to handle's file, starting at offset, forever.

    Args:
        handle: Open, readable handle
        chunk_size: Maximum bytes per yielded chunk
        offset: First byte to read
        poll_delay: Seconds to wait after a poll that found no new bytes
        sleep: Timer used for the wait (asyncio.sleep by default)
        on_truncate: What to do when the file shrinks below offset
    """
    check_tail_args(chunk_size, offset, poll_delay)

    while True:
        size = await handle.size()

        if size < offset and on_truncate is TruncationPolicy.RESTART:
            logger.info(f"{handle.path} shrank to {size} bytes (was at {offset}), restarting")
            offset = 0

        got_bytes = False
        if size > offset:
            batch = read_range_from_handle(handle, chunk_size, offset, size)
            async with aclosing(batch):
                async for chunk in batch:
                    offset += len(chunk)
                    got_bytes = True
                    yield chunk

        if not got_bytes:
            await sleep(poll_delay)
