from __future__ import annotations

import argparse
import dataclasses
import sys
import textwrap
from dataclasses import dataclass

from stubfetch.defaults import (
    DEBUG_TOKEN,
    DEFAULT_DEBUG,
    DEFAULT_KEEP_GOING,
    DEFAULT_READ_SIZE,
    DEFAULT_RECURSIVE,
    DEFAULT_WORKERS,
)

USAGE_EXIT_CODE = 1


@dataclass(slots=True)
class Context:
    # Field list should match CLI options.
    root: str = ""
    debug: bool = DEFAULT_DEBUG
    recursive: bool = DEFAULT_RECURSIVE
    keep_going: bool = DEFAULT_KEEP_GOING

    # Worker pool
    workers: int | None = DEFAULT_WORKERS
    read_size: int = DEFAULT_READ_SIZE

    def __post_init__(self):
        if self.workers is not None and self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers!r}")
        if self.read_size < 1:
            raise ValueError(f"read_size must be at least 1, got {self.read_size!r}")

    def replace(self, **kwargs) -> Context:
        """Creates a new copy of the context with the given kwargs updated."""
        return dataclasses.replace(self, **kwargs)


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad usage; this tool has always exited with 1."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(USAGE_EXIT_CODE, f"{self.prog}: error: {message}\n")


def _positive_int(val: str) -> int:
    """argparse `type=` for counts and sizes: rejects zero, negatives and non-numbers."""
    try:
        number = int(val)
    except ValueError:
        number = 0
    if number < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {val!r}")
    return number


def parse_common_args(argv: list[str] | None = None) -> Context:
    epilog = textwrap.dedent(
        """
        HOW IT WORKS
        Cloud-sync clients (Dropbox, OneDrive, ...) keep "online-only" placeholders for files
        whose content has not been downloaded yet. Reading the first bytes of such a file makes
        the client fetch all of it. stubfetch walks ROOT and reads the head of every file on a
        pool of worker threads, one per CPU by default.

        EXIT STATUS
        0 when the walk completed (files that could not be opened are only reported),
        1 on bad usage, an invalid ROOT, or a directory that could not be enumerated.
        """
    )

    parser = _ArgumentParser(
        prog="stubfetch",
        description="Forces a cloud-sync client to download every file under a directory",
        add_help=True,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )

    parser.add_argument(
        "root",
        type=str,
        help="Directory to materialize.",
    )
    # Legacy invocation: `stubfetch ROOT debug`. Any other word is accepted and leaves debug off.
    parser.add_argument(
        "mode",
        type=str,
        nargs="?",
        help=f"Pass the literal '{DEBUG_TOKEN}' to enable debug output. Same as --debug.",
        default=None,
    )
    parser.add_argument(
        "-v",
        "--debug",
        action="store_true",
        help="Print the number of worker threads and every file right before it is read.",
        default=DEFAULT_DEBUG,
    )
    parser.add_argument(
        "-j",
        "--workers",
        "--threads",
        type=_positive_int,
        dest="workers",
        default=DEFAULT_WORKERS,
        help="Number of worker threads. Defaults to the number of CPUs.",
    )
    parser.add_argument(
        "--read-size",
        type=_positive_int,
        dest="read_size",
        default=DEFAULT_READ_SIZE,
        help=f"Bytes to read from the start of each file (default: {DEFAULT_READ_SIZE}).",
    )
    parser.add_argument(
        "--no-recurse",
        action="store_false",
        dest="recursive",
        help="Only materialize files directly inside ROOT; do not descend into sub-directories.",
        default=DEFAULT_RECURSIVE,
    )
    parser.add_argument(
        "-k",
        "--keep-going",
        action="store_true",
        dest="keep_going",
        help="Log and skip directories that cannot be enumerated instead of aborting.",
        default=DEFAULT_KEEP_GOING,
    )

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    return Context(
        root=args.root,
        debug=bool(args.debug or args.mode == DEBUG_TOKEN),
        recursive=bool(args.recursive),
        keep_going=bool(args.keep_going),
        workers=args.workers,
        read_size=args.read_size,
    )
