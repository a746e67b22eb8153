"""Entry point for ``python -m dirstat``."""

from __future__ import annotations

from dirstat.app.cli import cli

__all__ = ["main"]


def main() -> None:
    """Run the dirstat command line."""
    cli()


if __name__ == "__main__":
    main()
