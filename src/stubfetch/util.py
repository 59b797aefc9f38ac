from __future__ import annotations

import os
from pathlib import PurePath


def display_path(path: PurePath | str) -> str:
    """Collapse doubled back-slashes for display. Never used for filesystem access."""
    return str(path).replace("\\\\", "\\")


def detect_parallelism() -> int:
    # os.cpu_count() may return None on exotic platforms
    count = os.cpu_count()
    return count if count and count > 0 else 1


def resolve_workers(workers: int | None) -> int:
    if workers is None:
        return detect_parallelism()
    if workers < 1:
        raise ValueError(f"Worker count must be at least 1, got {workers!r}")
    return workers
