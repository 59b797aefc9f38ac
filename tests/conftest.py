from pathlib import Path
from typing import NamedTuple

import pytest

from tests.utils import write_bytes


class DataTree(NamedTuple):
    root: Path
    top_level: dict[str, int]
    nested: dict[str, int]

    @property
    def all_files(self) -> dict[str, int]:
        return {**self.top_level, **self.nested}

    def abs(self, rel: str) -> str:
        return str(self.root / rel)


@pytest.fixture
def stubfetch_tmp_path():
    """Create a temporary directory with 'stubfetch' prefix."""
    import shutil
    import tempfile

    temp_dir = Path(tempfile.mkdtemp(prefix="stubfetch.")).resolve()
    try:
        yield temp_dir
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def data_tree(stubfetch_tmp_path: Path) -> DataTree:
    """
    A small tree mirroring a synced folder.

    root/
      a.txt            50 bytes
      b.bin            5000 bytes (larger than one read)
      sub/
        c.txt          10 bytes
        deeper/
          d.md         2048 bytes
      empty_dir/
    """
    top_level = {"a.txt": 50, "b.bin": 5000}
    nested = {"sub/c.txt": 10, "sub/deeper/d.md": 2048}
    for rel, size in {**top_level, **nested}.items():
        write_bytes(stubfetch_tmp_path / rel, size)
    (stubfetch_tmp_path / "empty_dir").mkdir()
    return DataTree(root=stubfetch_tmp_path, top_level=top_level, nested=nested)
