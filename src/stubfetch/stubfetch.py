from __future__ import annotations

import sys

from . import cli_common
from .adapters.filesystem import FileSystemSource
from .cli_common import Context
from .core import AccessError, InvalidRootError, ParallelMaterializer, StdoutWriter, Writer


def _report(message: str) -> None:
    sys.stderr.write(message + "\n")


def main(*, argv: list[str] | None = None, writer: Writer | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ctx: Context = cli_common.parse_common_args(argv)
    out_writer = writer or StdoutWriter()

    source = FileSystemSource()
    try:
        root = source.validate_root(ctx.root)
    except InvalidRootError as e:
        _report(str(e))
        return 1

    materializer = ParallelMaterializer(source, ctx=ctx, console=out_writer)
    try:
        materializer.run(root)
    except AccessError as e:
        _report(f"Filesystem error: {e}")
        return 1
    except Exception as e:
        _report(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
