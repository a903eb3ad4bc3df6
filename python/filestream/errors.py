"""
Exception hierarchy for filestream.

Every failure surfaced by a read, write, tail or watch stream is one of
these. None of them are retried automatically; the enclosing stream ends
with the exception.

- OpenError: path missing, permission denied, bad flag combination
- FileIOError: read/write/size/close failed on an already-open handle
- WatchRegistrationError: path missing or modifier unsupported
- WatchPollError: the notification facility failed while polling
"""

import errno as _errno
from typing import Optional


class FileStreamError(Exception):
    """Base class for all filestream errors."""


class OpenError(FileStreamError, OSError):
    """A file could not be opened with the requested flags."""

    @classmethod
    def from_os_error(cls, exc: OSError, path) -> "OpenError":
        return cls(exc.errno, f"Cannot open {path}: {exc.strerror}", str(path))


class FileIOError(FileStreamError, OSError):
    """A read, write, size or close call failed on an open handle."""

    @classmethod
    def from_os_error(cls, exc: OSError, path, action: str) -> "FileIOError":
        return cls(exc.errno, f"Failed to {action} {path}: {exc.strerror}", str(path))

    @classmethod
    def closed(cls, path) -> "FileIOError":
        return cls(_errno.EBADF, f"File handle for {path} is closed", str(path))


class WatchRegistrationError(FileStreamError):
    """A path could not be registered with the watcher."""

    def __init__(self, message: str, path: Optional[object] = None) -> None:
        super().__init__(message)
        self.path = path


class WatchPollError(FileStreamError):
    """The notification facility failed while events were being polled."""
