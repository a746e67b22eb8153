"""Application runner wiring configuration, sinks and the worker pool."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final

from dirstat.core.config import WalkConfig
from dirstat.core.walk import (
    FilesystemProbe,
    ProbeError,
    RecordSink,
    RootPathError,
    SkippedEntrySink,
    WalkSummary,
    WorkerPool,
    effective_workers,
)
from dirstat.utils.formatting import format_duration, format_size
from dirstat.utils.logging import clear_run_id, new_run_id

logger = logging.getLogger(__name__)

# Seconds a cancelled walk gets to wind down before the sinks are closed
SHUTDOWN_TIMEOUT: Final[float] = 10.0


class WalkRunner:
    """Runs one walk from a root path to the configured output files."""

    def __init__(
        self,
        root: Path,
        config: WalkConfig | None = None,
        *,
        probe: FilesystemProbe | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            root: Path to walk
            config: Walk settings (defaults when None)
            probe: Filesystem probe shared with the pool
        """
        self.root: Path = root
        self.config: WalkConfig = config or WalkConfig()
        self._probe: FilesystemProbe = probe or FilesystemProbe()

    def run(self, timeout: float | None = None) -> WalkSummary:
        """Walk the root and write every finished record.

        The root is probed before any output file is touched, so an unusable
        root leaves previous output in place.

        Raises:
            RootPathError: If the root cannot be probed or listed
            WalkError: If the walk fails or is cancelled
            TimeoutError: If the walk does not finish within timeout
        """
        run_id = new_run_id()
        try:
            try:
                _ = self._probe.probe(self.root)
            except ProbeError as exc:
                raise RootPathError(self.root, exc) from exc

            workers = effective_workers(self.config.max_workers)
            logger.debug(
                "Starting run %s",
                run_id,
                extra={"output_path": str(self.config.output_path), "workers": workers},
            )

            record_sink = RecordSink.open(
                self.config.output_path,
                utc_timestamps=self.config.utc_timestamps,
            )
            skipped_sink = (
                SkippedEntrySink.open(self.config.skipped_path)
                if self.config.skipped_path is not None
                else SkippedEntrySink()
            )
            with record_sink, skipped_sink:
                pool = WorkerPool(
                    self.root,
                    record_sink,
                    workers=workers,
                    strategy=self.config.strategy,
                    probe=self._probe,
                    skipped_sink=skipped_sink,
                )
                try:
                    summary = pool.run(timeout)
                except (TimeoutError, KeyboardInterrupt):
                    if not pool.stop(SHUTDOWN_TIMEOUT):
                        logger.warning(
                            "Workers still busy %.0fs after cancellation, closing output anyway",
                            SHUTDOWN_TIMEOUT,
                        )
                    raise

            logger.info(
                "Walk complete: %d entries, %d skipped, %s total in %s",
                summary.entries,
                summary.skipped,
                format_size(summary.total_size),
                format_duration(summary.duration),
            )
            return summary
        finally:
            clear_run_id()
