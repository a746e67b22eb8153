"""dirstat - concurrent filesystem inventory with per-directory statistics.

Walks a directory tree with a pool of worker threads and writes one record
per entry: raw metadata plus the aggregate size, direct-child count and
subtree depth of every directory.
"""

from dirstat.__main__ import main

__all__ = ["main"]
