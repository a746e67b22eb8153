"""Logging setup with per-walk run IDs.

Each walk gets a run ID stored in a ContextVar. Worker threads are started
inside a copy of the caller's context, so every log line of one walk carries
the same ID regardless of which thread emitted it.
"""

from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from pathlib import Path
from typing import Final, override

run_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id",
    default=None,
)

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(run_id)s] - %(message)s"


class RunIdFilter(logging.Filter):
    """Logging filter that adds the current run ID to log records."""

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        run_id = run_id_var.get()
        record.run_id = run_id if run_id is not None else "N/A"
        return True


def configure_logging(
    *,
    log_level: str = "INFO",
    log_file: Path | None = None,
    enable_console: bool = True,
) -> None:
    """Configure root logging for the command-line tool.

    Console output goes to stderr so it never mixes with redirected data.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file receiving the same log lines
        enable_console: Enable the stderr handler
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove existing handlers to avoid duplicates
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    run_filter = RunIdFilter()
    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(run_filter)
        root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.addFilter(run_filter)
        root_logger.addHandler(file_handler)


def new_run_id() -> str:
    """Generate a run ID and make it current for this context."""
    run_id = uuid.uuid4().hex[:12]
    _ = run_id_var.set(run_id)
    return run_id


def get_run_id() -> str | None:
    return run_id_var.get()


def clear_run_id() -> None:
    _ = run_id_var.set(None)
