from __future__ import annotations

import logging
import sys
import threading
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Generic, Iterator, Protocol, TypeVar

from stubfetch.defaults import DEFAULT_READ_SIZE
from stubfetch.util import display_path, resolve_workers

if TYPE_CHECKING:
    from stubfetch.adapters.filesystem import FileSystemSource
    from stubfetch.cli_common import Context

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StubfetchError(Exception):
    pass


class InvalidRootError(StubfetchError):
    """The root path does not exist or is not a directory."""


class AccessError(StubfetchError):
    """A directory could not be enumerated. Aborts the run unless keep-going is set."""


class QueueClosedError(StubfetchError):
    pass


class Writer(Protocol):
    def write(self, text: str) -> None: ...


class StdoutWriter(Writer):
    """Writes to the current sys.stdout, escaping anything its encoding cannot represent."""

    def write(self, text: str) -> None:
        stream = sys.stdout
        encoding = getattr(stream, "encoding", None) or "utf-8"
        # Undecodable file names arrive as lone surrogates.
        text = text.encode(encoding, errors="backslashreplace").decode(encoding)
        stream.write(text)
        stream.flush()


class StringWriter(Writer):
    """
    Collects written text into an internal buffer for tests and callers.

    Provides a lightweight Writer implementation that accumulates text and
    exposes it via the `text()` accessor.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []

    def write(self, text: str) -> None:  # Writer protocol
        self._parts.append(text)

    def text(self) -> str:
        return "".join(self._parts)

    def lines(self) -> list[str]:
        return self.text().splitlines()


class SynchronizedWriter(Writer):
    """
    Serializes writes from many worker threads onto one underlying writer.

    Handed explicitly to every component that prints, so there is no
    process-wide console lock.
    """

    def __init__(self, writer: Writer) -> None:
        self._writer = writer
        self._lock = threading.Lock()

    def write(self, text: str) -> None:
        with self._lock:
            self._writer.write(text)


class WorkQueue(Generic[T]):
    """
    FIFO channel between one producer and many competing consumers.

    A single lock guards both the items and the closed flag. `close()` is the
    completion signal: once set it is never reset, and consumers stop as soon
    as they observe it with nothing left to take.
    """

    def __init__(self) -> None:
        self._items: deque[T] = deque()
        self._closed = False
        self._lock = threading.Lock()
        self._not_empty_or_closed = threading.Condition(self._lock)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def put(self, item: T) -> None:
        with self._lock:
            if self._closed:
                raise QueueClosedError("Cannot put on a closed queue")
            self._items.append(item)
            self._not_empty_or_closed.notify()

    def get(self) -> T:
        """Block until an item is available. Raises QueueClosedError once closed and drained."""
        with self._lock:
            self._not_empty_or_closed.wait_for(lambda: self._items or self._closed)
            if not self._items:
                raise QueueClosedError("Queue is closed and drained")
            return self._items.popleft()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._not_empty_or_closed.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except QueueClosedError:
                return


@dataclass
class RunStats:
    """Counters shared by the walker and all workers. Every update goes through the lock."""

    queued: int = 0
    read: int = 0
    failed: int = 0
    bytes_read: int = 0
    skipped_dirs: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, **deltas: int) -> None:
        with self._lock:
            for name, delta in deltas.items():
                setattr(self, name, getattr(self, name) + delta)


def _announce(console: Writer, file_path: Path | str) -> None:
    try:
        console.write(f"Downloading file: {display_path(file_path)}\n")
    except UnicodeError as e:
        # Only the line is lost; the read still happens.
        logger.warning("Cannot display file name %r: %s", str(file_path), e)


def materialize(
    file_path: Path | str,
    *,
    console: Writer,
    stats: RunStats,
    read_size: int = DEFAULT_READ_SIZE,
    debug: bool = False,
) -> bool:
    """
    Open `file_path` in binary mode and read up to `read_size` bytes, discarding them.

    The read alone is what makes the sync client download a stub. Returns False
    when the file could not be opened; the failure is logged and counted, never raised.
    """
    if not str(file_path):
        logger.error("Encountered an empty file path.")
        stats.add(failed=1)
        return False
    try:
        handle = open(file_path, "rb")
    except OSError as e:
        logger.error("Unable to open file: %s (%s)", file_path, e.strerror or e)
        stats.add(failed=1)
        return False
    with handle:
        if debug:
            _announce(console, file_path)
        try:
            chunk = handle.read(read_size)
        except OSError as e:
            logger.error("Unable to read file: %s (%s)", file_path, e.strerror or e)
            stats.add(failed=1)
            return False
    stats.add(read=1, bytes_read=len(chunk))
    return True


class WorkerPool(Generic[T]):
    """
    Fixed number of threads draining one WorkQueue.

    Each worker takes one item at a time and hands it to `handler`. Workers
    exit when the queue is closed and empty.
    """

    queue: WorkQueue[T]
    size: int

    def __init__(self, queue: WorkQueue[T], handler: Callable[[T], object], size: int) -> None:
        if size < 1:
            raise ValueError(f"Worker pool needs at least one worker, got {size!r}")
        self.queue = queue
        self.size = size
        self._handler = handler
        self._threads: list[threading.Thread] = []

    def _work(self) -> None:
        for item in self.queue:
            try:
                self._handler(item)
            except Exception:
                # One bad item must not starve the rest of the queue.
                logger.exception("Worker failed on %s", item)

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("Worker pool already started")
        for i in range(self.size):
            thread = threading.Thread(target=self._work, name=f"stubfetch-worker-{i}")
            thread.start()
            self._threads.append(thread)

    def join(self) -> None:
        for thread in self._threads:
            thread.join()

    def __enter__(self) -> WorkerPool[T]:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        # Closing is what lets the workers finish, so it happens even if the producer raised.
        self.queue.close()
        self.join()


class ParallelMaterializer:
    """
    Walks a root directory on the calling thread and materializes every file on a worker pool.

    Responsibilities: pool sizing, completion signalling, debug output.
    Traversal and filtering are delegated to the source.
    """

    source: FileSystemSource
    console: Writer
    workers: int
    read_size: int
    debug: bool

    def __init__(self, source: FileSystemSource, ctx: Context, console: Writer) -> None:
        self.source = source
        self.console = console if isinstance(console, SynchronizedWriter) else SynchronizedWriter(console)
        self.workers = resolve_workers(ctx.workers)
        self.read_size = ctx.read_size
        self.debug = ctx.debug
        self.source.configure(ctx)

    def _handle_file(self, file_path: Path, stats: RunStats) -> None:
        materialize(
            file_path,
            console=self.console,
            stats=stats,
            read_size=self.read_size,
            debug=self.debug,
        )

    def run(self, root: Path | str) -> RunStats:
        stats = RunStats()
        queue: WorkQueue[Path] = WorkQueue()
        if self.debug:
            self.console.write(f"Threads: {self.workers}\n")

        with WorkerPool(queue, lambda path: self._handle_file(path, stats), self.workers):
            for file_path in self.source.walk(root, stats=stats):
                queue.put(file_path)
                stats.add(queued=1)
        return stats
