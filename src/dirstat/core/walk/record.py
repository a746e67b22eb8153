"""Entry records produced by the walk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Final

from .probe import EntryMetadata, FileMode

# 64-bit FNV-1a parameters
_FNV_OFFSET64: Final[int] = 0xCBF29CE484222325
_FNV_PRIME64: Final[int] = 0x100000001B3
_MASK64: Final[int] = 0xFFFFFFFFFFFFFFFF


def path_hash(path: Path | str) -> int:
    """Return the 64-bit FNV-1a digest of a path's filesystem bytes.

    The value identifies an entry within one run only; it is not meant to be
    compared across runs, platforms or tools.

    Examples:
        >>> f"{path_hash(''):016x}"
        'cbf29ce484222325'
    """
    h = _FNV_OFFSET64
    for b in os.fsencode(path):
        h ^= b
        h = (h * _FNV_PRIME64) & _MASK64
    return h


@dataclass(frozen=True, slots=True)
class EntryRecord:
    """Finished statistics for one entry.

    ``width`` and ``length`` are only meaningful for directories and stay zero
    for every other mode. For directories ``size`` is the sum of the direct
    children's sizes.
    """

    path: Path
    hash: int
    size: int
    depth: int
    width: int
    length: int
    mode: FileMode
    created_at: datetime
    modified_at: datetime
    accessed_at: datetime


class RecordBuilder:
    """Mutable, not-yet-finalized record owned by a task.

    Not thread-safe on its own; the owning task serializes ``absorb`` calls.
    """

    __slots__ = ("path", "hash", "depth", "size", "width", "length", "metadata")

    def __init__(self, path: Path, depth: int, metadata: EntryMetadata) -> None:
        self.path: Path = path
        self.hash: int = path_hash(path)
        self.depth: int = depth
        self.metadata: EntryMetadata = metadata
        self.size: int = metadata.size
        self.width: int = 0
        self.length: int = 0

    @property
    def mode(self) -> FileMode:
        return self.metadata.mode

    def absorb(self, child: EntryRecord) -> None:
        """Fold a finished direct child into this record."""
        self.width += 1
        self.size += child.size
        self.length = max(self.length, child.length + 1)

    def freeze(self) -> EntryRecord:
        return EntryRecord(
            path=self.path,
            hash=self.hash,
            size=self.size,
            depth=self.depth,
            width=self.width,
            length=self.length,
            mode=self.metadata.mode,
            created_at=self.metadata.created_at,
            modified_at=self.metadata.modified_at,
            accessed_at=self.metadata.accessed_at,
        )
