"""
Tests for Watcher lifecycle and registration.

These tests focus on:
1. Creation, start and close (idempotent)
2. Registration validation (missing paths, modifiers, event types)
3. Re-entrant registration on one watcher
4. Events drained by an abandoned poll reaching the next consumer
"""

import asyncio

import pytest

from filestream import (
    WatchEvent,
    WatchEventType,
    WatchModifier,
    WatchPollError,
    WatchRegistrationError,
    Watcher,
    watch,
    watcher,
)
from filestream.watch import build_registration


# ============================================================================
# LIFECYCLE TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_watcher_create_and_close(blocker):
    w = await Watcher.create(blocker)
    assert w.is_running()

    await w.close()
    assert not w.is_running()
    assert w.closed


@pytest.mark.asyncio
async def test_watcher_close_twice_is_safe():
    w = await Watcher.create()
    await w.close()
    await w.close()  # Second close should be a no-op
    assert w.closed


@pytest.mark.asyncio
async def test_scoped_watcher_is_closed_on_exit(watch_dir):
    async with watcher() as w:
        await w.watch(watch_dir)
        assert w.is_running()

    assert w.closed
    assert not w.is_running()
    assert w.registrations == []


@pytest.mark.asyncio
async def test_scoped_watcher_is_closed_on_error(watch_dir):
    with pytest.raises(RuntimeError, match="consumer failed"):
        async with watcher() as w:
            await w.watch(watch_dir)
            raise RuntimeError("consumer failed")

    assert w.closed


@pytest.mark.asyncio
async def test_events_after_close_raise_poll_error():
    w = await Watcher.create()
    await w.close()

    with pytest.raises(WatchPollError, match="closed"):
        await w.events(0.1).__anext__()


@pytest.mark.asyncio
async def test_events_rejects_non_positive_timeout():
    async with watcher() as w:
        with pytest.raises(ValueError, match="poll_timeout"):
            await w.events(0).__anext__()


# ============================================================================
# REGISTRATION TESTS
# ============================================================================


@pytest.mark.asyncio
async def test_watch_missing_path_raises(tmp_path):
    async with watcher() as w:
        with pytest.raises(WatchRegistrationError, match="does not exist"):
            await w.watch(tmp_path / "missing")
        assert w.registrations == []


@pytest.mark.asyncio
async def test_watch_unsupported_modifier_raises(watch_dir):
    async with watcher() as w:
        with pytest.raises(WatchRegistrationError, match="modifier"):
            await w.watch(watch_dir, modifiers=["sensitivity=high"])


@pytest.mark.asyncio
async def test_watch_unknown_event_type_raises(watch_dir):
    async with watcher() as w:
        with pytest.raises(WatchRegistrationError, match="event type"):
            await w.watch(watch_dir, types=["renamed"])


@pytest.mark.asyncio
async def test_file_tree_on_file_raises(watched_file):
    async with watcher() as w:
        with pytest.raises(WatchRegistrationError, match="FILE_TREE"):
            await w.watch(watched_file, modifiers=[WatchModifier.FILE_TREE])


@pytest.mark.asyncio
async def test_watch_after_close_raises(watch_dir):
    w = await Watcher.create()
    await w.close()

    with pytest.raises(WatchRegistrationError, match="closed"):
        await w.watch(watch_dir)


@pytest.mark.asyncio
async def test_multiple_registrations_accumulate(watch_dir, watched_file):
    async with watcher() as w:
        first = await w.watch(watch_dir, [WatchEventType.CREATED])
        second = await w.watch(watched_file, [WatchEventType.MODIFIED])

        assert w.registrations == [first, second]
        assert first.types == frozenset({WatchEventType.CREATED})
        assert second.path == watched_file.resolve()


def test_empty_types_means_all(watch_dir):
    registration = build_registration(watch_dir)
    assert registration.types == frozenset(WatchEventType)
    assert registration.modifiers == frozenset()
    assert not registration.recursive


def test_file_tree_modifier_makes_registration_recursive(watch_dir):
    registration = build_registration(watch_dir, modifiers=[WatchModifier.FILE_TREE])
    assert registration.recursive


@pytest.mark.asyncio
async def test_watch_shortcut_checks_timeout_before_registering(tmp_path):
    # A missing path would fail registration; the bad timeout must win
    with pytest.raises(ValueError, match="poll_timeout"):
        await watch(tmp_path / "missing", poll_timeout=0).__anext__()


# ============================================================================
# ABANDONED POLLS
# ============================================================================


@pytest.mark.asyncio
async def test_event_survives_timed_out_consumer(tmp_path):
    """
    Test: a consumer that gives up mid-poll does not lose the next event

    The worker thread keeps waiting after its consumer is cancelled; the
    next events() stream must pick up whatever that poll drains.
    """
    target = (tmp_path / "x").resolve()
    async with watcher() as w:
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(w.events(1.0).__anext__(), 0.1)

        w._buffer.put(WatchEvent(WatchEventType.CREATED, target), target)

        event = await asyncio.wait_for(w.events(0.5).__anext__(), 2.0)

    assert event == WatchEvent(WatchEventType.CREATED, target)


@pytest.mark.asyncio
async def test_undelivered_batch_carries_over_to_next_stream(tmp_path):
    first = (tmp_path / "a").resolve()
    second = (tmp_path / "b").resolve()
    async with watcher() as w:
        w._buffer.put(WatchEvent(WatchEventType.CREATED, first), first)
        w._buffer.put(WatchEvent(WatchEventType.DELETED, second), second)

        events = w.events(0.5)
        got_first = await asyncio.wait_for(events.__anext__(), 2.0)
        await events.aclose()

        got_second = await asyncio.wait_for(w.events(0.5).__anext__(), 2.0)

    assert got_first == WatchEvent(WatchEventType.CREATED, first)
    assert got_second == WatchEvent(WatchEventType.DELETED, second)
