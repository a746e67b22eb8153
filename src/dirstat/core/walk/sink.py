"""Output sinks for finished records and skipped entries."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Self, TextIO, override

from dirstat.utils.formatting import format_record_line, format_skipped_line

from .probe import ProbeError, ProbeStage
from .record import EntryRecord, path_hash

logger = logging.getLogger(__name__)


class SinkClosedError(RuntimeError):
    """Raised when emitting to a closed sink."""


@dataclass(frozen=True, slots=True)
class SkippedEntry:
    """Per-entry failure marker reported instead of a record."""

    path: Path
    depth: int
    stage: ProbeStage
    error: str
    message: str

    @property
    def hash(self) -> int:
        return path_hash(self.path)

    @classmethod
    def from_error(cls, error: ProbeError, depth: int) -> SkippedEntry:
        return cls(
            path=error.path,
            depth=depth,
            stage=error.stage,
            error=error.reason,
            message=str(error),
        )


def open_output(path: Path) -> TextIO:
    """Truncate and open an output file for line-oriented writing.

    ``surrogateescape`` lets undecodable path bytes round-trip unchanged.
    """
    return path.open("w", encoding="utf-8", errors="surrogateescape", newline="\n")


class LineSink[T](ABC):
    """Append-only destination; each ``emit`` is atomic with respect to others."""

    def __init__(self, stream: TextIO | None = None, *, owns_stream: bool = False) -> None:
        """Initialize the sink.

        Args:
            stream: Text stream to write lines to (None writes nothing)
            owns_stream: Close the stream when the sink is closed
        """
        self._stream: TextIO | None = stream
        self._owns_stream: bool = owns_stream
        self._lock: threading.Lock = threading.Lock()
        self._count: int = 0
        self._closed: bool = False

    @property
    def count(self) -> int:
        """Number of items emitted so far."""
        return self._count

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, item: T) -> None:
        """Write one item.

        Raises:
            SinkClosedError: If the sink has been closed
        """
        line = self.format(item)
        with self._lock:
            if self._closed:
                raise SinkClosedError(f"{type(self).__name__} is closed")
            if self._stream is not None:
                _ = self._stream.write(line)
            self._count += 1
            self._on_emit(item)

    @abstractmethod
    def format(self, item: T) -> str:
        """Render one item as a newline-terminated line."""

    def _on_emit(self, item: T) -> None:  # pyright: ignore[reportUnusedParameter]
        """Hook called under the sink lock after each write."""
        return None

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._stream is not None:
                if self._owns_stream:
                    self._stream.close()
                else:
                    self._stream.flush()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class RecordSink(LineSink[EntryRecord]):
    """Tab-separated record output, one line per finished entry."""

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        owns_stream: bool = False,
        utc_timestamps: bool = True,
    ) -> None:
        super().__init__(stream, owns_stream=owns_stream)
        self.utc_timestamps: bool = utc_timestamps

    @classmethod
    def open(cls, path: Path, *, utc_timestamps: bool = True) -> RecordSink:
        """Create a sink writing to a freshly truncated file."""
        return cls(open_output(path), owns_stream=True, utc_timestamps=utc_timestamps)

    @override
    def format(self, item: EntryRecord) -> str:
        return format_record_line(item, utc=self.utc_timestamps)


class SkippedEntrySink(LineSink[SkippedEntry]):
    """Side channel for entries that could not be read.

    Every skipped entry is logged at WARNING; the optional stream receives a
    tab-separated line per entry as well.
    """

    @classmethod
    def open(cls, path: Path) -> SkippedEntrySink:
        return cls(open_output(path), owns_stream=True)

    @override
    def format(self, item: SkippedEntry) -> str:
        return format_skipped_line(item)

    @override
    def _on_emit(self, item: SkippedEntry) -> None:
        logger.warning(
            "Skipped %s (%s %s)",
            item.path,
            item.stage.value,
            item.error,
            extra={"path": str(item.path), "stage": item.stage.value, "error": item.error},
        )
