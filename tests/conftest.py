"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from dirstat.utils.logging import RunIdFilter, clear_run_id
from tests.fixtures.walk_fixtures import CollectingSink, CollectingSkippedSink, TreeSpec, build_tree


@pytest.fixture
def tree_factory(tmp_path: Path) -> Callable[[TreeSpec], Path]:
    """Build a directory tree under a fresh ``root`` directory and return it."""

    def factory(spec: TreeSpec) -> Path:
        root = tmp_path / "root"
        build_tree(root, spec)
        return root

    return factory


@pytest.fixture
def collecting_sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def skipped_sink() -> CollectingSkippedSink:
    return CollectingSkippedSink()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop handlers installed by configure_logging and clear the run ID after each test."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if any(isinstance(f, RunIdFilter) for f in handler.filters):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
    clear_run_id()
