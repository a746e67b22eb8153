"""Fixed-size worker pool driving the concurrent walk.

The pool is seeded with a single request for the root. Workers pop requests,
materialize tasks, enumerate directories and push one request per child.
Completion is detected with an explicit in-flight counter: it is incremented
when a request is submitted and decremented when the resulting task finalizes
(or the request is skipped). A queued request therefore counts as in flight,
so the counter can only reach zero once the queue is empty and no task is
alive. At that point the queue is closed and the workers exit.
"""

from __future__ import annotations

import contextvars
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .probe import FilesystemProbe, ProbeError
from .queue import ScanStrategy, WorkQueue
from .record import EntryRecord
from .sink import LineSink, SkippedEntry, SkippedEntrySink
from .task import WalkRequest, WalkTask

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS: Final[int] = 128


def available_parallelism() -> int:
    """Number of CPUs this process may run on."""
    if hasattr(os, "sched_getaffinity"):
        return len(os.sched_getaffinity(0)) or 1
    return os.cpu_count() or 1


def effective_workers(max_workers: int = DEFAULT_MAX_WORKERS) -> int:
    """Clamp a configured maximum to the available parallelism.

    Raises:
        ValueError: If max_workers is less than 1
    """
    if max_workers < 1:
        msg = f"max_workers must be at least 1, got: {max_workers}"
        raise ValueError(msg)
    return min(max_workers, available_parallelism())


class WalkError(Exception):
    """Base exception for walks that did not complete."""


class RootPathError(WalkError):
    """The root path itself cannot be probed or listed."""

    def __init__(self, root: Path, cause: ProbeError) -> None:
        reason = cause.cause.strerror or str(cause.cause)
        super().__init__(f"Cannot walk root path {root}: {reason} ({cause.stage.value})")
        self.root: Path = root
        self.cause: ProbeError = cause


class WalkCancelledError(WalkError):
    """The walk was shut down before it completed."""


@dataclass(frozen=True, slots=True)
class WalkSummary:
    """Outcome of a completed walk."""

    root: Path
    entries: int
    skipped: int
    total_size: int
    workers: int
    duration: float


class InFlightCounter:
    """Lock-protected counter of submitted but unfinished requests."""

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._value: int = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def decrement(self) -> int:
        with self._lock:
            if self._value <= 0:
                raise RuntimeError("in-flight counter underflow")
            self._value -= 1
            return self._value


class WorkerPool:
    """Explicitly started and joined pool of walk workers.

    Example:
        >>> with RecordSink.open(Path("output.dat")) as sink:
        ...     summary = WorkerPool(Path("/data"), sink, workers=8).run()
    """

    def __init__(
        self,
        root: Path,
        sink: LineSink[EntryRecord],
        *,
        workers: int = 1,
        strategy: ScanStrategy = ScanStrategy.BREADTH_FIRST,
        probe: FilesystemProbe | None = None,
        skipped_sink: SkippedEntrySink | None = None,
    ) -> None:
        """Initialize the pool and seed the queue with the root request.

        Args:
            root: Directory (or single entry) to walk; made absolute, symlinks kept
            sink: Destination for finished records
            workers: Number of worker threads
            strategy: Queue pop order
            probe: Filesystem probe (mainly replaced in tests)
            skipped_sink: Destination for per-entry failures (default: log only)
        """
        if workers < 1:
            msg = f"workers must be at least 1, got: {workers}"
            raise ValueError(msg)

        self.root: Path = Path(os.path.abspath(root))
        self.workers: int = workers
        self._sink: LineSink[EntryRecord] = sink
        self._skipped_sink: SkippedEntrySink = skipped_sink or SkippedEntrySink()
        self._probe: FilesystemProbe = probe or FilesystemProbe()
        self._queue: WorkQueue[WalkRequest] = WorkQueue(strategy)
        self._in_flight: InFlightCounter = InFlightCounter()
        self._threads: list[threading.Thread] = []

        self._state_lock: threading.Lock = threading.Lock()
        self._error: BaseException | None = None
        self._entries: int = 0
        self._skipped: int = 0
        self._total_size: int = 0
        self._started_at: float | None = None
        self._finished_at: float | None = None

        self._submit(WalkRequest(path=self.root, depth=0))

    @property
    def in_flight(self) -> int:
        return self._in_flight.value

    @property
    def started(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        """Spawn the worker threads.

        Each worker runs in a copy of the caller's context so context-bound
        logging fields carry over.
        """
        if self.started:
            raise RuntimeError("worker pool already started")

        self._started_at = time.monotonic()
        logger.info(
            "Walking %s with %d worker(s), %s",
            self.root,
            self.workers,
            self._queue.strategy.value,
        )
        for index in range(self.workers):
            context = contextvars.copy_context()
            thread = threading.Thread(
                target=context.run,
                args=(self._worker_loop,),
                name=f"dirstat-worker-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def join(self, timeout: float | None = None) -> WalkSummary:
        """Wait for all workers to exit.

        Args:
            timeout: Overall seconds to wait (None waits indefinitely)

        Returns:
            Summary of the completed walk

        Raises:
            RootPathError: If the root could not be probed or listed
            WalkCancelledError: If shutdown() was called before completion
            WalkError: If a worker failed unexpectedly
            TimeoutError: If workers are still running after timeout
        """
        if not self.started:
            raise RuntimeError("worker pool not started")

        if not self._wait_for_workers(timeout):
            msg = f"walk of {self.root} did not finish within {timeout}s"
            raise TimeoutError(msg)

        if self._error is not None:
            if isinstance(self._error, WalkError):
                raise self._error
            msg = f"walk of {self.root} failed: {self._error}"
            raise WalkError(msg) from self._error

        if self._in_flight.value != 0:
            msg = f"workers exited with {self._in_flight.value} request(s) still in flight"
            raise WalkError(msg)

        return self._summary()

    def run(self, timeout: float | None = None) -> WalkSummary:
        """Start, then join; cancels the walk on KeyboardInterrupt."""
        self.start()
        try:
            return self.join(timeout)
        except KeyboardInterrupt:
            self.shutdown()
            raise

    def shutdown(self) -> None:
        """Cancel the walk: drop queued requests and let workers exit."""
        self._fail(WalkCancelledError(f"walk of {self.root} cancelled"))

    def stop(self, timeout: float | None = None) -> bool:
        """Cancel the walk and wait for the workers to exit.

        Args:
            timeout: Seconds to wait (None waits indefinitely)

        Returns:
            True if every worker exited in time
        """
        self.shutdown()
        return self._wait_for_workers(timeout)

    def _wait_for_workers(self, timeout: float | None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)
            if thread.is_alive():
                return False
        return True

    def _summary(self) -> WalkSummary:
        assert self._started_at is not None
        finished_at = self._finished_at or time.monotonic()
        with self._state_lock:
            return WalkSummary(
                root=self.root,
                entries=self._entries,
                skipped=self._skipped,
                total_size=self._total_size,
                workers=self.workers,
                duration=finished_at - self._started_at,
            )

    def _worker_loop(self) -> None:
        logger.debug("Worker started")
        while True:
            request = self._queue.pop()
            if request is None:
                break
            try:
                self._process(request)
            except Exception as exc:
                self._fail(exc)
                break
        logger.debug("Worker exiting")

    def _process(self, request: WalkRequest) -> None:
        try:
            task = WalkTask.create(request, self._probe, self._on_finalized)
        except ProbeError as exc:
            if request.parent is None:
                raise RootPathError(self.root, exc) from exc
            self._skip(exc, request.depth)
            request.parent.child_skipped()
            self._retire()
            return

        try:
            for child_path in task.enumerate(self._probe):
                self._submit(task.spawn_child_request(child_path))
        except ProbeError as exc:
            if task.depth == 0:
                raise RootPathError(self.root, exc) from exc
            self._skip(exc, task.depth)

        task.finish_enumeration()

    def _submit(self, request: WalkRequest) -> None:
        _ = self._in_flight.increment()
        try:
            self._queue.push(request)
        except Exception:
            _ = self._in_flight.decrement()
            raise

    def _retire(self) -> None:
        if self._in_flight.decrement() == 0:
            self._finished_at = time.monotonic()
            logger.debug("No requests in flight, closing work queue")
            _ = self._queue.close()

    def _on_finalized(self, record: EntryRecord) -> None:
        self._sink.emit(record)
        with self._state_lock:
            self._entries += 1
            if record.depth == 0:
                self._total_size = record.size
        self._retire()

    def _skip(self, error: ProbeError, depth: int) -> None:
        with self._state_lock:
            self._skipped += 1
        self._skipped_sink.emit(SkippedEntry.from_error(error, depth))

    def _fail(self, error: BaseException) -> None:
        with self._state_lock:
            if self._error is not None:
                return
            self._error = error

        if isinstance(error, WalkCancelledError):
            logger.info("%s", error)
        elif isinstance(error, RootPathError):
            logger.error("%s", error)
        else:
            logger.error("Walk worker failed", exc_info=error)

        dropped = self._queue.close(discard=True)
        if dropped:
            logger.debug("Discarded %d queued request(s)", dropped)
