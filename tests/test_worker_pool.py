from __future__ import annotations

import threading
from collections import Counter

import pytest

from stubfetch.core import WorkerPool, WorkQueue


def _run(items: list[int], size: int, handler) -> None:
    queue: WorkQueue[int] = WorkQueue()
    with WorkerPool(queue, handler, size):
        for item in items:
            queue.put(item)


@pytest.mark.parametrize("size", [1, 2, 7])
def test_every_item_is_processed_exactly_once(size: int):
    counts: Counter[int] = Counter()
    lock = threading.Lock()

    def handler(item: int) -> None:
        with lock:
            counts[item] += 1

    _run(list(range(500)), size, handler)
    assert set(counts) == set(range(500))
    assert set(counts.values()) == {1}


def test_empty_queue_terminates_without_calling_handler():
    calls: list[int] = []
    _run([], 4, calls.append)
    assert calls == []


def test_pool_spawns_exactly_size_threads():
    seen_threads: set[str] = set()
    lock = threading.Lock()
    barrier = threading.Barrier(3, timeout=5)

    def handler(_: int) -> None:
        barrier.wait()
        with lock:
            seen_threads.add(threading.current_thread().name)

    _run([1, 2, 3], 3, handler)
    assert seen_threads == {"stubfetch-worker-0", "stubfetch-worker-1", "stubfetch-worker-2"}


def test_handler_exception_does_not_stop_other_items(caplog):
    processed: list[int] = []
    lock = threading.Lock()

    def handler(item: int) -> None:
        if item == 3:
            raise RuntimeError("boom")
        with lock:
            processed.append(item)

    _run(list(range(10)), 2, handler)
    assert sorted(processed) == [0, 1, 2, 4, 5, 6, 7, 8, 9]
    assert any("Worker failed on 3" in r.getMessage() for r in caplog.records)


def test_workers_are_joined_when_producer_raises():
    queue: WorkQueue[int] = WorkQueue()
    processed: list[int] = []
    pool = WorkerPool(queue, processed.append, 2)
    with pytest.raises(ValueError, match="producer failed"):
        with pool:
            queue.put(1)
            raise ValueError("producer failed")
    assert queue.closed
    assert processed == [1]


def test_pool_rejects_non_positive_size():
    with pytest.raises(ValueError):
        WorkerPool(WorkQueue(), lambda _: None, 0)


def test_pool_cannot_be_started_twice():
    queue: WorkQueue[int] = WorkQueue()
    pool = WorkerPool(queue, lambda _: None, 1)
    pool.start()
    try:
        with pytest.raises(RuntimeError):
            pool.start()
    finally:
        queue.close()
        pool.join()
