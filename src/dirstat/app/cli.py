"""Command-line interface for dirstat."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Final

import click

from dirstat.core.config import VALID_LOG_LEVELS, ConfigurationError, load_config
from dirstat.core.walk import RootPathError, ScanStrategy, WalkError
from dirstat.utils.logging import configure_logging

# Exit codes
EXIT_SUCCESS: Final[int] = 0
EXIT_CONFIG_ERROR: Final[int] = 1
EXIT_ROOT_ERROR: Final[int] = 2
EXIT_WALK_ERROR: Final[int] = 3
EXIT_INTERRUPTED: Final[int] = 130

try:
    __version__ = version("dirstat")
except PackageNotFoundError:
    __version__ = "unknown"


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level.

    Raises:
        click.BadParameter: If the level is unknown
    """
    if value is None:
        return value

    normalized_value = value.upper().strip()
    if normalized_value not in VALID_LOG_LEVELS:
        raise click.BadParameter(
            f'Invalid log level "{value}". Valid options: {", ".join(sorted(VALID_LOG_LEVELS))}'
        )
    return normalized_value


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "root_path",
    type=click.Path(path_type=Path),
    default=Path("."),
    required=False,
)
@click.option(
    "--config", "-c",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML configuration file. Command-line options override its values.",
)
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Record output file (default: output.dat, truncated each run).",
)
@click.option(
    "--skipped", "-s",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Also write unreadable entries to this TSV file.",
)
@click.option(
    "--workers", "-w",
    type=click.IntRange(min=1, max=1024),
    default=None,
    help="Maximum worker threads (clamped to available CPUs).",
)
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in ScanStrategy]),
    default=None,
    help="Order in which queued entries are picked up.",
)
@click.option(
    "--local-time",
    is_flag=True,
    default=False,
    help="Render timestamps in local time (legacy output, still suffixed with Z).",
)
@click.option(
    "--log-level", "-l",
    type=str,
    default=None,
    callback=validate_log_level,
    help="Logging verbosity level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Also write log lines to this file.",
)
@click.version_option(version=__version__, prog_name="dirstat")
@click.pass_context
def cli(
    ctx: click.Context,
    root_path: Path,
    config: Path | None,
    output: Path | None,
    skipped: Path | None,
    workers: int | None,
    strategy: str | None,
    local_time: bool,
    log_level: str | None,
    log_file: Path | None,
) -> None:
    """Walk ROOT_PATH (default: current directory) and record every entry.

    Each entry gets one tab-separated line with its hash, size, depth, width,
    length, mode, timestamps and path. Directory sizes are the sum of their
    children.

    Examples:

        # Inventory the current directory into output.dat
        dirstat

        # Walk /data with at most 16 workers, listing unreadable entries
        dirstat /data --workers 16 --skipped skipped.dat
    """
    from dirstat.app.runner import WalkRunner

    try:
        walk_config = load_config(config).with_overrides(
            output_path=output,
            skipped_path=skipped,
            max_workers=workers,
            strategy=strategy,
            utc_timestamps=False if local_time else None,
            log_level=log_level,
            log_file=log_file,
        )
    except ConfigurationError as exc:
        click.echo(f"Configuration error:\n{exc}", err=True)
        ctx.exit(EXIT_CONFIG_ERROR)

    configure_logging(log_level=walk_config.log_level, log_file=walk_config.log_file)

    try:
        _ = WalkRunner(root_path, walk_config).run()
    except RootPathError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(EXIT_ROOT_ERROR)
    except WalkError as exc:
        click.echo(f"Walk failed: {exc}", err=True)
        ctx.exit(EXIT_WALK_ERROR)
    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)
        ctx.exit(EXIT_INTERRUPTED)
    except OSError as exc:
        click.echo(f"Cannot write output: {exc}", err=True)
        ctx.exit(EXIT_WALK_ERROR)

    ctx.exit(EXIT_SUCCESS)
