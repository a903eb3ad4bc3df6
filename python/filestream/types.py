"""
Shared types for file streams and watch streams.

- OpenFlag: how a FileHandle is opened
- TruncationPolicy: what tail does when the file shrinks
- WatchEventType / WatchModifier / WatchEvent / WatchRegistration
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class OpenFlag(Enum):
    """Open options for FileHandle.open()."""

    READ = "read"
    WRITE = "write"
    CREATE = "create"  # Create if absent
    CREATE_NEW = "create_new"  # Create, fail if present
    APPEND = "append"  # Writes start at the current end of file
    TRUNCATE = "truncate"  # Truncate to 0 bytes if present
    SYNC = "sync"  # Content and metadata written synchronously
    DSYNC = "dsync"  # Content written synchronously


# create-if-absent, truncate-if-present
DEFAULT_WRITE_FLAGS: tuple[OpenFlag, ...] = (OpenFlag.CREATE, OpenFlag.TRUNCATE)


class TruncationPolicy(Enum):
    """Behaviour of tail when the file becomes shorter than the read offset."""

    IGNORE = "ignore"  # Treat as "no new bytes", keep the offset
    RESTART = "restart"  # Reset the offset to 0 and follow the new content


class WatchEventType(Enum):
    """File system event types reported by Watcher."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    OVERFLOW = "overflow"  # Events were lost


ALL_EVENT_TYPES: frozenset[WatchEventType] = frozenset(WatchEventType)


class WatchModifier(Enum):
    """Platform-specific registration modifiers."""

    FILE_TREE = "file_tree"  # Watch a directory recursively


@dataclass(frozen=True)
class WatchEvent:
    """A single change notification: what happened, and to which path."""

    type: WatchEventType
    path: Path


@dataclass(frozen=True)
class WatchRegistration:
    """One watched path with its event filter and modifiers."""

    path: Path
    types: frozenset[WatchEventType] = ALL_EVENT_TYPES
    modifiers: frozenset[WatchModifier] = field(default_factory=frozenset)

    @property
    def recursive(self) -> bool:
        return WatchModifier.FILE_TREE in self.modifiers

    def accepts(self, event_type: WatchEventType) -> bool:
        # OVERFLOW is always delivered, it says nothing about a single type
        return event_type is WatchEventType.OVERFLOW or event_type in self.types
