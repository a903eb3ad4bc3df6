"""
Chunked reads from a FileHandle.

Both generators are lazy: nothing is read until the consumer asks for the
next chunk, and each chunk holds at most chunk_size bytes.
"""

from typing import AsyncIterator

from filestream.handle import FileHandle


def _check_chunk_size(chunk_size: int) -> None:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")


def check_range(start: int, end: int) -> None:
    if start < 0:
        raise ValueError(f"start must be >= 0, got {start}")
    if end < start:
        raise ValueError(f"end ({end}) must not be before start ({start})")


async def read_all_from_handle(
    handle: FileHandle, chunk_size: int, offset: int = 0
) -> AsyncIterator[bytes]:
    """Yield chunks from offset until read() reports end of file."""
    _check_chunk_size(chunk_size)
    while True:
        chunk = await handle.read(chunk_size, offset)
        if not chunk:
            return
        offset += len(chunk)
        yield chunk


async def read_range_from_handle(
    handle: FileHandle, chunk_size: int, start: int, end: int
) -> AsyncIterator[bytes]:
    """
    Yield the bytes of [start, end) in chunks.

    Never yields more than end - start bytes in total. Stops early if the
    file ends before `end`.
    """
    _check_chunk_size(chunk_size)
    check_range(start, end)
    offset = start
    while offset < end:
        chunk = await handle.read(min(chunk_size, end - offset), offset)
        if not chunk:
            return
        # pread never returns more than asked, but don't rely on it
        chunk = chunk[: end - offset]
        offset += len(chunk)
        yield chunk
