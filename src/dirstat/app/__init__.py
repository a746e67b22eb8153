"""Command-line application for dirstat."""

from __future__ import annotations

from dirstat.app.cli import cli
from dirstat.app.runner import WalkRunner

__all__ = [
    "cli",
    "WalkRunner",
]
