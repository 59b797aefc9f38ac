from pathlib import Path

DOWNLOADING_PREFIX = "Downloading file: "


def write_bytes(path: Path, size: int) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(bytes(i % 251 for i in range(size)))


def downloaded_paths(text: str) -> list[str]:
    return [
        line.removeprefix(DOWNLOADING_PREFIX)
        for line in text.splitlines()
        if line.startswith(DOWNLOADING_PREFIX)
    ]
