"""Walk tasks and the bottom-up completion protocol.

Every task starts with one pending hold for its own enumeration. Each child
request it spawns adds another. The hold is dropped once enumeration is
exhausted, and every child drops one when it finalizes (or is skipped). When
the count reaches zero the task finalizes: its record is frozen, folded into
the parent, handed to the ``on_finalize`` callback, and only then released from
the parent, which may in turn finalize. A directory therefore always finalizes
after all of its descendants.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from .probe import FileMode, FilesystemProbe
from .record import EntryRecord, RecordBuilder

FinalizeCallback = Callable[[EntryRecord], None]


@dataclass(frozen=True, slots=True)
class WalkRequest:
    """A pending spawn: path, depth and the parent task it reports to."""

    path: Path
    depth: int
    parent: WalkTask | None = None


class TaskStateError(RuntimeError):
    """Raised when the completion protocol is violated."""


class WalkTask:
    """Unit of work producing one entry's record."""

    def __init__(
        self,
        request: WalkRequest,
        record: RecordBuilder,
        on_finalize: FinalizeCallback,
    ) -> None:
        """Initialize the task.

        Args:
            request: Request the task was materialized from
            record: Initial record built from probed metadata
            on_finalize: Called once with the frozen record
        """
        self.parent: WalkTask | None = request.parent
        self._record: RecordBuilder = record
        self._on_finalize: FinalizeCallback = on_finalize
        self._lock: threading.Lock = threading.Lock()
        self._pending: int = 1
        self._enumerating: bool = True
        self._finalized: bool = False

    @classmethod
    def create(
        cls,
        request: WalkRequest,
        probe: FilesystemProbe,
        on_finalize: FinalizeCallback,
    ) -> WalkTask:
        """Probe the request's path and build a task for it.

        Raises:
            ProbeError: If the entry's metadata cannot be read
        """
        metadata = probe.probe(request.path)
        return cls(request, RecordBuilder(request.path, request.depth, metadata), on_finalize)

    @property
    def path(self) -> Path:
        return self._record.path

    @property
    def depth(self) -> int:
        return self._record.depth

    @property
    def mode(self) -> FileMode:
        return self._record.mode

    @property
    def finalized(self) -> bool:
        return self._finalized

    def enumerate(self, probe: FilesystemProbe) -> Iterator[Path]:
        """Lazily list immediate children; empty for non-directories."""
        if self._record.mode is not FileMode.DIRECTORY:
            return iter(())
        return probe.children(self._record.path)

    def spawn_child_request(self, child_path: Path) -> WalkRequest:
        """Register a pending child and return its request."""
        with self._lock:
            if not self._enumerating:
                msg = f"cannot spawn children of {self.path} after enumeration finished"
                raise TaskStateError(msg)
            self._pending += 1
        return WalkRequest(path=child_path, depth=self._record.depth + 1, parent=self)

    def finish_enumeration(self) -> None:
        """Drop the enumeration hold; finalizes the task if no child is pending."""
        with self._lock:
            if not self._enumerating:
                msg = f"enumeration of {self.path} already finished"
                raise TaskStateError(msg)
            self._enumerating = False
        self._settle()

    def child_skipped(self) -> None:
        """Drop the hold of a child that failed before producing a record."""
        self._settle()

    def _settle(self) -> None:
        task: WalkTask | None = self
        while task is not None and task._release():
            record = task._freeze()
            parent, task.parent = task.parent, None
            if parent is not None:
                parent._absorb(record)
            task._on_finalize(record)
            task = parent

    def _release(self) -> bool:
        with self._lock:
            if self._finalized:
                msg = f"{self.path} received a completion after finalizing"
                raise TaskStateError(msg)
            self._pending -= 1
            return self._pending == 0

    def _absorb(self, child: EntryRecord) -> None:
        with self._lock:
            self._record.absorb(child)

    def _freeze(self) -> EntryRecord:
        with self._lock:
            if self._finalized:
                msg = f"{self.path} finalized twice"
                raise TaskStateError(msg)
            self._finalized = True
            return self._record.freeze()
