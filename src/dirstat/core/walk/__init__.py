"""Concurrent directory walk with bottom-up aggregation."""

from __future__ import annotations

from .pool import (
    DEFAULT_MAX_WORKERS,
    RootPathError,
    WalkCancelledError,
    WalkError,
    WalkSummary,
    WorkerPool,
    available_parallelism,
    effective_workers,
)
from .probe import EntryMetadata, FileMode, FilesystemProbe, ProbeError, ProbeStage
from .queue import QueueClosedError, ScanStrategy, WorkQueue
from .record import EntryRecord, RecordBuilder, path_hash
from .sink import LineSink, RecordSink, SinkClosedError, SkippedEntry, SkippedEntrySink
from .task import TaskStateError, WalkRequest, WalkTask

__all__ = [
    "DEFAULT_MAX_WORKERS",
    "EntryMetadata",
    "EntryRecord",
    "FileMode",
    "FilesystemProbe",
    "LineSink",
    "ProbeError",
    "ProbeStage",
    "QueueClosedError",
    "RecordBuilder",
    "RecordSink",
    "RootPathError",
    "ScanStrategy",
    "SinkClosedError",
    "SkippedEntry",
    "SkippedEntrySink",
    "TaskStateError",
    "WalkCancelledError",
    "WalkError",
    "WalkRequest",
    "WalkSummary",
    "WalkTask",
    "WorkQueue",
    "WorkerPool",
    "available_parallelism",
    "effective_workers",
    "path_hash",
]
