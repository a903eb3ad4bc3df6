"""
Scoped acquisition of handles and watchers.

The resource is released exactly once when the scope exits, whether the
body finished, raised, or was cancelled. If release fails while another
exception is already propagating, the release failure is logged and
attached to that exception as a note; the original exception wins.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")


@asynccontextmanager
async def scoped(
    resource: R, release: Callable[[], Awaitable[None]], name: str
) -> AsyncIterator[R]:
    try:
        yield resource
    except BaseException as exc:
        try:
            await release()
        except Exception as release_exc:
            logger.error(
                f"Failed to release {name} after {type(exc).__name__}: {release_exc}",
                exc_info=release_exc,
            )
            exc.add_note(f"Additionally, releasing {name} failed: {release_exc!r}")
        raise
    await release()
