from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from stubfetch.core import AccessError, InvalidRootError, RunStats
from stubfetch.defaults import DEFAULT_KEEP_GOING, DEFAULT_RECURSIVE

if TYPE_CHECKING:
    from stubfetch.cli_common import Context

logger = logging.getLogger(__name__)


class FileSystemSource:
    """
    Adapter for the local (cloud-synced) filesystem.
    """

    recursive: bool
    keep_going: bool

    def __init__(self, *, recursive: bool = DEFAULT_RECURSIVE, keep_going: bool = DEFAULT_KEEP_GOING) -> None:
        self.recursive = recursive
        self.keep_going = keep_going

    def configure(self, ctx: "Context") -> None:
        self.recursive = ctx.recursive
        self.keep_going = ctx.keep_going

    @staticmethod
    def resolve(path) -> Path:
        """
        Absolute form of `path` without resolving symlinks.

        normpath+absolute collapses '..' segments while leaving links alone, unlike Path.resolve().
        """
        return Path(os.path.normpath(Path(path).absolute()))

    def validate_root(self, path) -> Path:
        root = self.resolve(path)
        if not root.exists() or not root.is_dir():
            raise InvalidRootError(f"Invalid directory path: {path}")
        return root

    def _on_enumeration_error(self, directory: Path, error: OSError, stats: RunStats | None) -> None:
        if not self.keep_going:
            raise AccessError(f"Cannot enumerate {directory}: {error.strerror or error}") from error
        logger.warning("Skipping directory %s: %s", directory, error.strerror or error)
        if stats is not None:
            stats.add(skipped_dirs=1)

    def walk(self, root, *, stats: RunStats | None = None) -> Iterable[Path]:
        """
        Yield every regular file under `root` in depth-first order.

        - Entries are sorted case-insensitively within each directory, so the order is stable
          across runs over the same tree.
        - Symlinks to files are yielded (reading them materializes the target); symlinked
          directories are never descended into.
        - Non-recursive sources yield only the files directly inside `root`.
        - A directory that cannot be enumerated raises AccessError, or is skipped with a
          warning when `keep_going` is set.
        """
        stack: list[Path] = [self.resolve(root)]
        while stack:
            current = stack.pop()
            dirs: list[os.DirEntry] = []
            files: list[os.DirEntry] = []
            try:
                with os.scandir(current) as it:
                    for entry in it:
                        if entry.is_dir(follow_symlinks=False):
                            dirs.append(entry)
                        elif entry.is_file():
                            files.append(entry)
            except OSError as e:
                self._on_enumeration_error(current, e, stats)
                continue

            if self.recursive:
                dirs.sort(key=lambda e: e.name.casefold())
                # Push directories in reverse order for stack-based DFS
                for d in reversed(dirs):
                    stack.append(Path(d.path))

            files.sort(key=lambda e: e.name.casefold())
            for f in files:
                yield Path(f.path)
