"""Pure formatting utilities for record lines and human-readable summaries.

This module provides stateless formatting functions for converting walk
results into output lines and log-friendly strings. All functions are pure
with no side effects.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from dirstat.core.walk.record import EntryRecord
    from dirstat.core.walk.sink import SkippedEntry

# The trailing "Z" is literal; see format_timestamp
TIMESTAMP_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%SZ"

# Binary unit constants (1024-based)
_KB_INT = 1024
_MB_INT = _KB_INT * 1024  # 1,048,576
_GB_INT = _MB_INT * 1024  # 1,073,741,824
_TB_INT = _GB_INT * 1024  # 1,099,511,627,776

# Time unit constants
_MINUTE = 60
_HOUR = _MINUTE * 60  # 3,600


def format_timestamp(moment: datetime, *, utc: bool = True) -> str:
    """Render a timestamp as ``YYYY-MM-DDThh:mm:ssZ``.

    Args:
        moment: Timezone-aware timestamp
        utc: Render in UTC. False renders local time while still appending
            ``Z`` for compatibility with older output files.

    Returns:
        Timestamp string truncated to whole seconds

    Examples:
        >>> format_timestamp(datetime(2024, 1, 2, 3, 4, 5, 999, tzinfo=UTC))
        '2024-01-02T03:04:05Z'
    """
    converted = moment.astimezone(UTC) if utc else moment.astimezone()
    return converted.strftime(TIMESTAMP_FORMAT)


def format_hash(value: int) -> str:
    """Render a 64-bit hash as 16 zero-padded lowercase hex digits.

    Examples:
        >>> format_hash(255)
        '00000000000000ff'
    """
    return f"{value:016x}"


def format_record_line(record: EntryRecord, *, utc: bool = True) -> str:
    """Render a finished record as one tab-separated output line.

    Field order: hash, size, depth, width, length, mode, created_at,
    modified_at, accessed_at, path. The path is written unescaped.
    """
    fields = (
        format_hash(record.hash),
        str(record.size),
        str(record.depth),
        str(record.width),
        str(record.length),
        str(int(record.mode)),
        format_timestamp(record.created_at, utc=utc),
        format_timestamp(record.modified_at, utc=utc),
        format_timestamp(record.accessed_at, utc=utc),
        str(record.path),
    )
    return "\t".join(fields) + "\n"


def format_skipped_line(entry: SkippedEntry) -> str:
    """Render a skipped entry as ``hash depth stage error path``."""
    fields = (
        format_hash(entry.hash),
        str(entry.depth),
        entry.stage.value,
        entry.error,
        str(entry.path),
    )
    return "\t".join(fields) + "\n"


def format_size(bytes: int, *, precision: int = 1) -> str:
    """Convert bytes to human-readable size format.

    Uses binary units (1024-based) for consistency with system tools.
    For terabyte values, displays both TB and GB components for clarity.

    Args:
        bytes: Number of bytes to format (must be non-negative)
        precision: Number of decimal places for TB display (default: 1)

    Examples:
        >>> format_size(512)
        '512 Bytes'
        >>> format_size(5242880)
        '5 MB'
        >>> format_size(2748779069440)
        '2.5 TB (2560 GB)'
    """
    if bytes < 0:
        msg = "bytes must be non-negative"
        raise ValueError(msg)

    if bytes >= _TB_INT:
        tb = bytes // _TB_INT
        gb = (bytes % _TB_INT) // _GB_INT
        return f"{tb + gb / 1024.0:.{precision}f} TB ({tb * 1024 + gb} GB)"

    if bytes >= _GB_INT:
        return f"{bytes // _GB_INT} GB"

    if bytes >= _MB_INT:
        return f"{bytes // _MB_INT} MB"

    if bytes >= _KB_INT:
        return f"{bytes // _KB_INT} KB"

    return f"{bytes} Bytes"


def format_duration(seconds: float) -> str:
    """Convert seconds to a short duration string.

    Sub-minute durations keep two decimals.

    Examples:
        >>> format_duration(0.25)
        '0.25s'
        >>> format_duration(90)
        '1m 30s'
        >>> format_duration(3665)
        '1h 1m'
    """
    if seconds < 0:
        msg = "seconds must be non-negative"
        raise ValueError(msg)

    if seconds < _MINUTE:
        return f"{seconds:.2f}s"

    total_seconds = int(seconds)

    if total_seconds >= _HOUR:
        hours, remaining = divmod(total_seconds, _HOUR)
        minutes = remaining // _MINUTE
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"

    minutes, remaining = divmod(total_seconds, _MINUTE)
    return f"{minutes}m {remaining}s" if remaining else f"{minutes}m"
