"""Thread-safe double-ended work queue."""

from __future__ import annotations

import threading
from collections import deque
from enum import Enum


class ScanStrategy(str, Enum):
    """Order in which pending requests are handed to workers."""

    BREADTH_FIRST = "breadth_first"  # push front, pop back
    DEPTH_FIRST = "depth_first"  # push front, pop front


class QueueClosedError(RuntimeError):
    """Raised when pushing onto a closed queue."""


class WorkQueue[T]:
    """Blocking deque shared by all workers.

    Producers always insert at the front. ``pop`` takes from the back for
    breadth-first order or from the front for depth-first order. Once closed,
    waiting consumers wake up and ``pop`` returns ``None`` as soon as the queue
    has drained.
    """

    def __init__(self, strategy: ScanStrategy = ScanStrategy.BREADTH_FIRST) -> None:
        self.strategy: ScanStrategy = strategy
        self._items: deque[T] = deque()
        self._cond: threading.Condition = threading.Condition(threading.Lock())
        self._closed: bool = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, item: T) -> None:
        """Insert an item and wake one waiting consumer.

        Raises:
            QueueClosedError: If the queue has been closed
        """
        with self._cond:
            if self._closed:
                raise QueueClosedError("work queue is closed")
            self._items.appendleft(item)
            self._cond.notify()

    def pop(self, timeout: float | None = None) -> T | None:
        """Remove the next item, blocking while the queue is empty and open.

        Args:
            timeout: Seconds to wait for an item (None waits indefinitely)

        Returns:
            The next item, or None if the queue is closed and drained or the
            timeout expired
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._items or self._closed, timeout):
                return None
            if not self._items:
                return None
            if self.strategy is ScanStrategy.DEPTH_FIRST:
                return self._items.popleft()
            return self._items.pop()

    def close(self, *, discard: bool = False) -> int:
        """Stop accepting items and wake every waiting consumer.

        Args:
            discard: Drop items still queued instead of letting consumers drain them

        Returns:
            Number of discarded items
        """
        with self._cond:
            self._closed = True
            dropped = 0
            if discard:
                dropped = len(self._items)
                self._items.clear()
            self._cond.notify_all()
            return dropped
