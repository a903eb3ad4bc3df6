"""
Tests for FileHandle and open_handle.

These tests focus on:
1. Open flag translation and invalid combinations
2. Positioned reads/writes and size queries
3. Close semantics (idempotent, exactly once through open_handle)
4. Release failures never masking the original error
5. Descriptors orphaned by a cancelled open being closed on the pool
"""

import asyncio
import errno
import os
import threading

import pytest

from filestream import FileHandle, FileIOError, OpenError, OpenFlag, open_handle
from filestream import handle as handle_module
from filestream.handle import os_open_flags


# ============================================================================
# OPEN FLAG TESTS
# ============================================================================


def test_read_only_flags():
    assert os_open_flags([OpenFlag.READ]) & (os.O_WRONLY | os.O_RDWR) == 0


def test_read_write_flags():
    bits = os_open_flags([OpenFlag.READ, OpenFlag.WRITE, OpenFlag.CREATE])
    assert bits & os.O_RDWR
    assert bits & os.O_CREAT


def test_append_implies_write():
    bits = os_open_flags([OpenFlag.APPEND])
    assert bits & os.O_WRONLY
    assert bits & os.O_APPEND


def test_append_with_truncate_rejected():
    with pytest.raises(OpenError, match="TRUNCATE"):
        os_open_flags([OpenFlag.WRITE, OpenFlag.APPEND, OpenFlag.TRUNCATE])


def test_append_on_read_only_handle_rejected():
    with pytest.raises(OpenError, match="requires WRITE"):
        os_open_flags([OpenFlag.READ, OpenFlag.APPEND])


# ============================================================================
# OPEN TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_open_missing_path_raises_open_error(tmp_path):
    with pytest.raises(OpenError) as excinfo:
        await FileHandle.open(tmp_path / "missing.bin")

    assert excinfo.value.errno == errno.ENOENT
    assert isinstance(excinfo.value, OSError)
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)


@pytest.mark.asyncio
async def test_append_without_create_on_missing_path_fails(tmp_path):
    with pytest.raises(OpenError):
        await FileHandle.open(tmp_path / "missing.log", [OpenFlag.WRITE, OpenFlag.APPEND])
    assert not (tmp_path / "missing.log").exists()


@pytest.mark.asyncio
async def test_create_new_on_existing_path_fails(data_file):
    with pytest.raises(OpenError) as excinfo:
        await FileHandle.open(data_file, [OpenFlag.WRITE, OpenFlag.CREATE_NEW])
    assert excinfo.value.errno == errno.EEXIST


@pytest.mark.asyncio
async def test_open_directory_for_write_fails(tmp_path):
    with pytest.raises(OpenError):
        await FileHandle.open(tmp_path, [OpenFlag.WRITE])


# ============================================================================
# I/O TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_size_and_positioned_read(data_file, sample_bytes, blocker):
    async with open_handle(data_file, blocker=blocker) as handle:
        assert await handle.size() == len(sample_bytes)
        assert await handle.read(10, 100) == sample_bytes[100:110]
        # Positional reads don't move a shared cursor
        assert await handle.read(10, 0) == sample_bytes[:10]


@pytest.mark.asyncio
async def test_read_at_end_of_file_is_empty(data_file, sample_bytes):
    async with open_handle(data_file) as handle:
        assert await handle.read(64, len(sample_bytes)) == b""
        assert await handle.read(64, len(sample_bytes) + 1000) == b""


@pytest.mark.asyncio
async def test_size_is_not_cached(empty_file):
    async with open_handle(empty_file) as handle:
        assert await handle.size() == 0
        empty_file.write_bytes(b"grown")
        assert await handle.size() == 5


@pytest.mark.asyncio
async def test_write_returns_bytes_written(tmp_path):
    path = tmp_path / "out.bin"
    async with open_handle(path, [OpenFlag.WRITE, OpenFlag.CREATE]) as handle:
        assert await handle.write(b"hello", 0) == 5
        assert await handle.write(b"J", 0) == 1
    assert path.read_bytes() == b"Jello"


@pytest.mark.asyncio
async def test_truncate_and_force(data_file):
    async with open_handle(data_file, [OpenFlag.READ, OpenFlag.WRITE]) as handle:
        await handle.truncate(3)
        await handle.force()
        await handle.force(metadata=True)
        assert await handle.size() == 3
    assert len(data_file.read_bytes()) == 3


# ============================================================================
# CLOSE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_close_is_idempotent(data_file):
    handle = await FileHandle.open(data_file)
    await handle.close()
    await handle.close()
    assert handle.closed


@pytest.mark.asyncio
async def test_operations_after_close_raise(data_file):
    handle = await FileHandle.open(data_file)
    await handle.close()

    with pytest.raises(FileIOError, match="closed"):
        await handle.size()
    with pytest.raises(FileIOError):
        await handle.read(1, 0)
    with pytest.raises(FileIOError):
        await handle.write(b"x", 0)


@pytest.mark.asyncio
async def test_open_handle_closes_on_error(data_file):
    with pytest.raises(RuntimeError, match="boom"):
        async with open_handle(data_file) as handle:
            raise RuntimeError("boom")

    assert handle.closed


@pytest.mark.asyncio
async def test_release_failure_does_not_replace_original_error(data_file, monkeypatch):
    async def failing_close(self):
        os.close(self.fileno())
        raise FileIOError(errno.EIO, "close exploded", str(self.path))

    monkeypatch.setattr(FileHandle, "close", failing_close)

    with pytest.raises(RuntimeError, match="original") as excinfo:
        async with open_handle(data_file):
            raise RuntimeError("original")

    notes = getattr(excinfo.value, "__notes__", [])
    assert any("close exploded" in note for note in notes)


@pytest.mark.asyncio
async def test_release_failure_surfaces_on_success(data_file, monkeypatch):
    async def failing_close(self):
        os.close(self.fileno())
        raise FileIOError(errno.EIO, "close exploded", str(self.path))

    monkeypatch.setattr(FileHandle, "close", failing_close)

    with pytest.raises(FileIOError, match="close exploded"):
        async with open_handle(data_file):
            pass


# ============================================================================
# ORPHANED DESCRIPTORS
# ============================================================================


def _recording_close(monkeypatch):
    threads = []
    original = handle_module._close_fd

    def close_fd(fd):
        threads.append(threading.get_ident())
        original(fd)

    monkeypatch.setattr(handle_module, "_close_fd", close_fd)
    return threads


@pytest.mark.asyncio
async def test_orphaned_descriptor_closed_off_the_loop(data_file, blocker, monkeypatch):
    threads = _recording_close(monkeypatch)
    fd = os.open(data_file, os.O_RDONLY)
    opening = asyncio.get_running_loop().create_future()
    opening.set_result(fd)

    handle_module._close_orphaned_fd(blocker, opening)
    blocker.shutdown(wait=True)

    assert len(threads) == 1
    assert threads[0] != threading.get_ident()
    with pytest.raises(OSError):
        os.fstat(fd)


@pytest.mark.asyncio
async def test_orphaned_descriptor_closed_inline_after_shutdown(data_file, blocker, monkeypatch):
    threads = _recording_close(monkeypatch)
    fd = os.open(data_file, os.O_RDONLY)
    opening = asyncio.get_running_loop().create_future()
    opening.set_result(fd)
    blocker.shutdown(wait=True)

    handle_module._close_orphaned_fd(blocker, opening)

    assert threads == [threading.get_ident()]
    with pytest.raises(OSError):
        os.fstat(fd)


@pytest.mark.asyncio
async def test_failed_open_leaves_nothing_to_close(blocker, monkeypatch):
    threads = _recording_close(monkeypatch)
    opening = asyncio.get_running_loop().create_future()
    opening.set_exception(FileNotFoundError("gone"))

    handle_module._close_orphaned_fd(blocker, opening)
    blocker.shutdown(wait=True)

    assert threads == []
