"""
Offset-tracking writes to a FileHandle.

Each incoming chunk is written at the running offset. Short writes are
retried with the unwritten remainder until the whole chunk is on disk, so
the file ends up holding exactly the concatenation of the input.
"""

import logging
from collections.abc import AsyncIterable, Iterable
from typing import Union

from filestream.handle import FileHandle
from filestream.types import OpenFlag

logger = logging.getLogger(__name__)

Chunks = Union[AsyncIterable[bytes], Iterable[bytes]]


def check_chunks(chunks: Chunks) -> None:
    """Reject a single bytes-like object passed where a stream of chunks is expected."""
    if isinstance(chunks, (bytes, bytearray, memoryview)):
        raise TypeError(
            f"chunks must be an iterable of byte chunks, not a single "
            f"{type(chunks).__name__} object; wrap it in a list"
        )


async def _iterate(chunks: Chunks):
    if isinstance(chunks, AsyncIterable):
        async for chunk in chunks:
            yield chunk
    else:
        for chunk in chunks:
            yield chunk


async def write_chunk(handle: FileHandle, chunk: bytes, offset: int) -> int:
    """
    Write one chunk at offset, retrying short writes.

    Returns the offset just past the chunk.
    """
    remaining = memoryview(chunk).cast("B")
    while True:
        written = await handle.write(remaining, offset)
        if written >= len(remaining):
            return offset + len(remaining)
        if written < 0:
            raise ValueError(f"write() reported {written} bytes for {handle.path}")
        offset += written
        remaining = remaining[written:]
        logger.debug(
            f"Short write to {handle.path}: {written} bytes, {len(remaining)} left"
        )


async def write_all_to_handle_at_offset(
    chunks: Chunks, handle: FileHandle, offset: int
) -> int:
    """
    Write every chunk in order starting at offset.

    Returns the number of bytes written. Any failed write aborts the whole
    operation; nothing is resumed.
    """
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
    check_chunks(chunks)
    start = offset
    async for chunk in _iterate(chunks):
        if not chunk:
            continue
        offset = await write_chunk(handle, chunk, offset)
    return offset - start


async def write_all_to_handle(
    chunks: Chunks, handle: FileHandle, flags=frozenset()
) -> int:
    """
    Write chunks to handle, resolving the start offset from flags.

    With APPEND the first write lands at the file size observed right before
    it; otherwise writing starts at 0.
    """
    offset = await handle.size() if OpenFlag.APPEND in flags else 0
    return await write_all_to_handle_at_offset(chunks, handle, offset)
