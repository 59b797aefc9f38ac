# region ---[ Materialization ]---

DEFAULT_READ_SIZE: int = 1024
"""Bytes read from the head of each file. Enough for the sync client to fetch the whole file."""

# endregion ---[ Materialization ]---

# region ---[ Traversal ]---

DEFAULT_RECURSIVE: bool = True
DEFAULT_KEEP_GOING: bool = False
"""When False, the first directory that cannot be enumerated aborts the run."""

# endregion ---[ Traversal ]---

# region ---[ Workers and output ]---

DEFAULT_WORKERS: int | None = None
"""None means one worker per detected CPU."""

DEFAULT_DEBUG: bool = False
DEBUG_TOKEN: str = "debug"

# endregion ---[ Workers and output ]---
