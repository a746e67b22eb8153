"""Tests for output and summary formatting."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from dirstat.core.walk import FileMode, ProbeStage, SkippedEntry, path_hash
from dirstat.core.walk.record import EntryRecord
from dirstat.utils.formatting import (
    format_duration,
    format_hash,
    format_record_line,
    format_size,
    format_skipped_line,
    format_timestamp,
)

MOMENT = datetime(2024, 1, 2, 3, 4, 5, 678_000, tzinfo=UTC)


def make_record(path: Path, **kwargs: object) -> EntryRecord:
    values: dict[str, object] = {
        "path": path,
        "hash": path_hash(path),
        "size": 15,
        "depth": 0,
        "width": 2,
        "length": 2,
        "mode": FileMode.DIRECTORY,
        "created_at": MOMENT,
        "modified_at": MOMENT,
        "accessed_at": MOMENT,
    }
    values.update(kwargs)
    return EntryRecord(**values)  # pyright: ignore[reportArgumentType]


class TestFormatTimestamp:
    def test_utc_truncates_to_seconds(self) -> None:
        assert format_timestamp(MOMENT) == "2024-01-02T03:04:05Z"

    def test_converts_offset_to_utc(self) -> None:
        moment = datetime(2024, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))

        assert format_timestamp(moment) == "2024-01-02T03:04:05Z"

    def test_local_time_keeps_z_suffix(self) -> None:
        expected = MOMENT.astimezone().strftime("%Y-%m-%dT%H:%M:%S") + "Z"

        assert format_timestamp(MOMENT, utc=False) == expected


class TestFormatHash:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, "0000000000000000"),
            (255, "00000000000000ff"),
            (0xCBF29CE484222325, "cbf29ce484222325"),
        ],
    )
    def test_zero_padded_lowercase(self, value: int, expected: str) -> None:
        assert format_hash(value) == expected


class TestFormatRecordLine:
    def test_field_order(self) -> None:
        path = Path("/data/root")
        line = format_record_line(make_record(path))

        assert line.endswith("\n")
        fields = line.rstrip("\n").split("\t")
        assert fields == [
            format_hash(path_hash(path)),
            "15",
            "0",
            "2",
            "2",
            "2",
            "2024-01-02T03:04:05Z",
            "2024-01-02T03:04:05Z",
            "2024-01-02T03:04:05Z",
            "/data/root",
        ]

    def test_regular_file_mode_code(self) -> None:
        record = make_record(Path("/data/f"), mode=FileMode.REGULAR, width=0, length=0, size=7)

        fields = format_record_line(record).rstrip("\n").split("\t")

        assert fields[1:6] == ["7", "0", "0", "0", "1"]

    def test_path_with_spaces_unescaped(self) -> None:
        line = format_record_line(make_record(Path("/data/a b\tc")))

        assert line.rstrip("\n").endswith("/data/a b\tc")


class TestFormatSkippedLine:
    def test_fields(self) -> None:
        path = Path("/data/locked")
        entry = SkippedEntry(
            path=path,
            depth=3,
            stage=ProbeStage.ENUMERATE,
            error="EACCES",
            message="enumerate failed",
        )

        assert format_skipped_line(entry) == f"{format_hash(path_hash(path))}\t3\tenumerate\tEACCES\t/data/locked\n"


class TestFormatSize:
    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (0, "0 Bytes"),
            (512, "512 Bytes"),
            (2048, "2 KB"),
            (5 * 1024**2, "5 MB"),
            (3 * 1024**3, "3 GB"),
            (2748779069440, "2.5 TB (2560 GB)"),
        ],
    )
    def test_units(self, size: int, expected: str) -> None:
        assert format_size(size) == expected

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            _ = format_size(-1)


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0.25, "0.25s"),
            (59.994, "59.99s"),
            (60, "1m"),
            (90, "1m 30s"),
            (3600, "1h"),
            (3665, "1h 1m"),
        ],
    )
    def test_formats(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            _ = format_duration(-0.5)
