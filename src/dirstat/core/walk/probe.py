"""Filesystem probe: link-status metadata for a single path."""

from __future__ import annotations

import errno
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum, IntEnum
from pathlib import Path
from typing import Final


class FileMode(IntEnum):
    """Entry type as written to the mode column."""

    NONE = 0
    REGULAR = 1
    DIRECTORY = 2
    SYMLINK = 3
    BLOCK = 4
    CHARACTER = 5
    FIFO = 6
    SOCKET = 7
    UNKNOWN = 8


_MODE_BY_FORMAT: Final[dict[int, FileMode]] = {
    stat.S_IFREG: FileMode.REGULAR,
    stat.S_IFDIR: FileMode.DIRECTORY,
    stat.S_IFLNK: FileMode.SYMLINK,
    stat.S_IFBLK: FileMode.BLOCK,
    stat.S_IFCHR: FileMode.CHARACTER,
    stat.S_IFIFO: FileMode.FIFO,
    stat.S_IFSOCK: FileMode.SOCKET,
}


class ProbeStage(str, Enum):
    """Which filesystem call failed for an entry."""

    PROBE = "probe"
    ENUMERATE = "enumerate"


class ProbeError(Exception):
    """Raised when metadata or a directory listing cannot be read."""

    def __init__(self, path: Path, stage: ProbeStage, cause: OSError) -> None:
        """Initialize ProbeError.

        Args:
            path: Path that failed
            stage: Filesystem call that failed
            cause: Underlying OS error
        """
        super().__init__(f"{stage.value} failed for {path}: {cause.strerror or cause}")
        self.path: Path = path
        self.stage: ProbeStage = stage
        self.cause: OSError = cause

    @property
    def reason(self) -> str:
        """Short symbolic reason, e.g. ``ENOENT``."""
        if self.cause.errno is not None:
            return errno.errorcode.get(self.cause.errno, str(self.cause.errno))
        return type(self.cause).__name__


@dataclass(frozen=True, slots=True)
class EntryMetadata:
    """Raw metadata of one entry as reported by ``lstat``."""

    mode: FileMode
    size: int
    created_at: datetime
    modified_at: datetime
    accessed_at: datetime


# Bounds stay a day inside datetime's range so local-time rendering cannot overflow
EARLIEST_TIMESTAMP: Final[datetime] = datetime(1, 1, 2, tzinfo=UTC)
LATEST_TIMESTAMP: Final[datetime] = datetime(9999, 12, 30, 23, 59, 59, tzinfo=UTC)


def _timestamp(seconds: float) -> datetime:
    """Convert a stat time to UTC, clamping values datetime cannot represent."""
    try:
        moment = datetime.fromtimestamp(seconds, tz=UTC)
    except (ValueError, OverflowError, OSError):
        return EARLIEST_TIMESTAMP if seconds < 0 else LATEST_TIMESTAMP
    return min(max(moment, EARLIEST_TIMESTAMP), LATEST_TIMESTAMP)


def mode_from_stat(st_mode: int) -> FileMode:
    """Map an ``st_mode`` value to a :class:`FileMode`."""
    return _MODE_BY_FORMAT.get(stat.S_IFMT(st_mode), FileMode.UNKNOWN)


class FilesystemProbe:
    """Reads entry metadata and directory listings without following symlinks."""

    def probe(self, path: Path) -> EntryMetadata:
        """Query link-status metadata for a path.

        Args:
            path: Absolute path of the entry

        Returns:
            Metadata; ``size`` is zero for directories (filled in by aggregation)

        Raises:
            ProbeError: If the entry cannot be stat'ed
        """
        try:
            st = os.lstat(path)
        except OSError as exc:
            raise ProbeError(path, ProbeStage.PROBE, exc) from exc

        mode = mode_from_stat(st.st_mode)
        return EntryMetadata(
            mode=mode,
            size=0 if mode is FileMode.DIRECTORY else st.st_size,
            created_at=_timestamp(st.st_ctime),
            modified_at=_timestamp(st.st_mtime),
            accessed_at=_timestamp(st.st_atime),
        )

    def children(self, path: Path) -> Iterator[Path]:
        """Lazily yield the immediate children of a directory.

        Order is whatever the OS returns. The iterator is single-use.

        Raises:
            ProbeError: If the listing cannot be opened or read
        """
        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    yield path / entry.name
        except OSError as exc:
            raise ProbeError(path, ProbeStage.ENUMERATE, exc) from exc
