"""Shared helpers for walk tests: in-memory sinks, fault-injecting probes, tree builders."""

from __future__ import annotations

import errno
import os
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import override

import pytest

from dirstat.core.walk import (
    EntryMetadata,
    EntryRecord,
    FileMode,
    FilesystemProbe,
    LineSink,
    ProbeError,
    ProbeStage,
    SkippedEntry,
    SkippedEntrySink,
)

# A tree spec maps names to an int (file of that many bytes) or a nested spec (directory)
TreeSpec = Mapping[str, "int | TreeSpec"]


class CollectingSink(LineSink[EntryRecord]):
    """Record sink keeping finished records in completion order."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[EntryRecord] = []

    @override
    def format(self, item: EntryRecord) -> str:
        return ""

    @override
    def _on_emit(self, item: EntryRecord) -> None:
        self.records.append(item)

    def by_path(self) -> dict[Path, EntryRecord]:
        return {record.path: record for record in self.records}


class CollectingSkippedSink(SkippedEntrySink):
    """Skipped-entry sink that also keeps the entries for assertions."""

    def __init__(self) -> None:
        super().__init__()
        self.entries: list[SkippedEntry] = []

    @override
    def _on_emit(self, item: SkippedEntry) -> None:
        super()._on_emit(item)
        self.entries.append(item)


class FlakyProbe(FilesystemProbe):
    """Probe failing with EACCES for selected paths."""

    def __init__(
        self,
        fail_probe: set[Path] | None = None,
        fail_enumerate: set[Path] | None = None,
    ) -> None:
        self.fail_probe: set[Path] = fail_probe or set()
        self.fail_enumerate: set[Path] = fail_enumerate or set()

    @override
    def probe(self, path: Path) -> EntryMetadata:
        if path in self.fail_probe:
            raise ProbeError(path, ProbeStage.PROBE, PermissionError(errno.EACCES, "Permission denied", str(path)))
        return super().probe(path)

    @override
    def children(self, path: Path) -> Iterator[Path]:
        if path in self.fail_enumerate:
            raise ProbeError(path, ProbeStage.ENUMERATE, PermissionError(errno.EACCES, "Permission denied", str(path)))
        return super().children(path)


class VanishingProbe(FilesystemProbe):
    """Probe that deletes selected files right before stat'ing them."""

    def __init__(self, doomed: set[Path]) -> None:
        self.doomed: set[Path] = doomed

    @override
    def probe(self, path: Path) -> EntryMetadata:
        if path in self.doomed:
            path.unlink(missing_ok=True)
        return super().probe(path)


class PartialListingProbe(FilesystemProbe):
    """Probe whose listing of one directory fails after yielding a single child."""

    def __init__(self, broken: Path) -> None:
        self.broken: Path = broken

    @override
    def children(self, path: Path) -> Iterator[Path]:
        if path != self.broken:
            yield from super().children(path)
            return
        listing = super().children(path)
        first = next(listing, None)
        listing.close()
        if first is not None:
            yield first
        raise ProbeError(path, ProbeStage.ENUMERATE, OSError(errno.EIO, "Input/output error", str(path)))


class GatedProbe(FilesystemProbe):
    """Probe that blocks on a gate for one path, to hold a worker mid-walk."""

    def __init__(self, held: Path) -> None:
        self.held: Path = held
        self.reached: threading.Event = threading.Event()
        self.gate: threading.Event = threading.Event()

    @override
    def probe(self, path: Path) -> EntryMetadata:
        if path == self.held:
            self.reached.set()
            _ = self.gate.wait(timeout=10)
        return super().probe(path)


def patch_lstat_times(monkeypatch: pytest.MonkeyPatch, target: Path, **times: float) -> None:
    """Make os.lstat report the given st_*time values for one path."""
    real_lstat = os.lstat

    def fake_lstat(path: str | bytes | os.PathLike[str], *args: object, **kwargs: object) -> object:
        st = real_lstat(path, *args, **kwargs)  # pyright: ignore[reportArgumentType]
        if isinstance(path, bytes) or Path(path) != target:
            return st
        values = {name: getattr(st, name) for name in ("st_mode", "st_size", "st_ctime", "st_mtime", "st_atime")}
        values.update(times)
        return SimpleNamespace(**values)

    monkeypatch.setattr(os, "lstat", fake_lstat)


def build_tree(root: Path, spec: TreeSpec) -> None:
    """Create files and directories under root from a nested spec."""
    root.mkdir(parents=True, exist_ok=True)
    for name, node in spec.items():
        target = root / name
        if isinstance(node, int):
            _ = target.write_bytes(b"x" * node)
        else:
            build_tree(target, node)


@dataclass(frozen=True)
class ExpectedStats:
    size: int
    depth: int
    width: int
    length: int


def expected_stats(root: Path) -> dict[Path, ExpectedStats]:
    """Compute expected statistics with a plain sequential recursion."""
    result: dict[Path, ExpectedStats] = {}

    def visit(path: Path, depth: int) -> ExpectedStats:
        st = os.lstat(path)
        if not path.is_symlink() and path.is_dir():
            children = [visit(path / name, depth + 1) for name in os.listdir(path)]
            stats = ExpectedStats(
                size=sum(c.size for c in children),
                depth=depth,
                width=len(children),
                length=1 + max(c.length for c in children) if children else 0,
            )
        else:
            stats = ExpectedStats(size=st.st_size, depth=depth, width=0, length=0)
        result[path] = stats
        return stats

    _ = visit(root, 0)
    return result


def assert_aggregation_invariants(records: list[EntryRecord]) -> None:
    """Check size, width, length and depth invariants over a full record set."""
    by_path = {record.path: record for record in records}
    children: dict[Path, list[EntryRecord]] = {}
    for record in records:
        if record.depth > 0:
            parent = by_path[record.path.parent]
            assert record.depth == parent.depth + 1
            children.setdefault(parent.path, []).append(record)

    for record in records:
        kids = children.get(record.path, [])
        if record.mode is FileMode.DIRECTORY:
            assert record.size == sum(k.size for k in kids)
            assert record.width == len(kids)
            assert record.length == (1 + max(k.length for k in kids) if kids else 0)
        else:
            assert record.width == 0
            assert record.length == 0
            assert not kids


def assert_causal_order(records: list[EntryRecord]) -> None:
    """Every record must be emitted after all records below it."""
    position = {record.path: index for index, record in enumerate(records)}
    for record in records:
        for ancestor in record.path.parents:
            if ancestor in position:
                assert position[ancestor] > position[record.path], (
                    f"{ancestor} emitted before descendant {record.path}"
                )
