"""
Unit tests for the fixed-size worker pool.
"""

import threading
import time
import uuid

import pytest

from staticserver.core.worker_pool import WorkerPool, WorkerState
from staticserver.errors import PoolClosedError


class FakeConnection:
    """Just enough of Connection for the pool: id, deadline, close()."""

    def __init__(self, expired: bool = False):
        self.id = uuid.uuid4().hex[:8]
        self.expired = expired
        self.close_count = 0
        self.handled = False

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def close(self):
        self.close_count += 1


class RecordingHandler:
    """Handler that records every connection it sees."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.seen: list[FakeConnection] = []
        self._lock = threading.Lock()

    def __call__(self, conn: FakeConnection):
        if self.delay:
            time.sleep(self.delay)
        conn.handled = True
        with self._lock:
            self.seen.append(conn)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def pool(handler):
    pool = WorkerPool(worker_count=2, handler=handler, queue_size=16)
    pool.start()
    yield pool
    pool.shutdown(wait=False, timeout=5.0)


class TestWorkerPoolBasics:
    """Tests for WorkerPool lifecycle."""

    def test_start_spawns_workers(self, pool: WorkerPool):
        assert pool.is_running
        assert pool.alive_workers == 2
        assert pool.stats["workers"]["total"] == 2

    def test_start_twice_is_noop(self, pool: WorkerPool):
        pool.start()
        assert pool.stats["workers"]["total"] == 2

    def test_worker_count_must_be_positive(self, handler):
        with pytest.raises(ValueError):
            WorkerPool(worker_count=0, handler=handler)

    def test_submit_before_start(self, handler):
        pool = WorkerPool(worker_count=1, handler=handler)
        with pytest.raises(PoolClosedError):
            pool.submit(FakeConnection())


class TestWorkerPoolProcessing:
    """Every submitted connection is served once, then closed."""

    def test_each_connection_handled_once(self, handler: RecordingHandler):
        pool = WorkerPool(worker_count=3, handler=handler, queue_size=64)
        pool.start()
        conns = [FakeConnection() for _ in range(50)]

        for conn in conns:
            assert pool.submit(conn)
        pool.shutdown(wait=True, timeout=10.0)

        assert sorted(c.id for c in handler.seen) == sorted(c.id for c in conns)
        assert all(c.close_count == 1 for c in conns)
        assert pool.stats["items"]["completed"] == 50

    def test_single_worker_is_fifo(self, handler: RecordingHandler):
        pool = WorkerPool(worker_count=1, handler=handler, queue_size=64)
        pool.start()
        conns = [FakeConnection() for _ in range(10)]

        for conn in conns:
            pool.submit(conn)
        pool.shutdown(wait=True, timeout=10.0)

        assert [c.id for c in handler.seen] == [c.id for c in conns]

    def test_handler_exception_keeps_worker_alive(self):
        calls = []

        def flaky(conn):
            calls.append(conn)
            if len(calls) == 1:
                raise RuntimeError("boom")

        pool = WorkerPool(worker_count=1, handler=flaky)
        pool.start()
        first, second = FakeConnection(), FakeConnection()

        pool.submit(first)
        pool.submit(second)
        pool.shutdown(wait=True, timeout=10.0)

        assert calls == [first, second]
        assert first.closed and second.closed
        assert pool.stats["items"]["failed"] == 1
        assert pool.stats["items"]["completed"] == 1

    def test_expired_connection_dropped(self, handler: RecordingHandler):
        pool = WorkerPool(worker_count=1, handler=handler)
        pool.start()
        stale = FakeConnection(expired=True)

        pool.submit(stale)
        pool.shutdown(wait=True, timeout=10.0)

        assert not stale.handled
        assert stale.closed
        assert pool.stats["items"]["cancelled"] == 1


class TestBackPressure:
    """A full queue blocks or rejects further submissions."""

    def test_non_blocking_submit_on_full_queue(self):
        release = threading.Event()
        started = threading.Event()

        def blocking(conn):
            started.set()
            release.wait(5.0)

        pool = WorkerPool(worker_count=1, handler=blocking, queue_size=1)
        pool.start()
        try:
            pool.submit(FakeConnection())
            assert started.wait(5.0)      # the worker holds item 1
            assert pool.submit(FakeConnection(), block=False)   # fills the queue
            assert not pool.submit(FakeConnection(), block=False)
            assert not pool.submit(FakeConnection(), timeout=0.05)
            assert pool.queue_depth == 1
            assert pool.busy_workers == 1
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)


class TestShutdown:
    """Tests for WorkerPool.shutdown()."""

    def test_joins_all_workers(self, handler: RecordingHandler):
        pool = WorkerPool(worker_count=4, handler=handler)
        pool.start()

        pool.shutdown(wait=True, timeout=5.0)

        assert pool.alive_workers == 0
        assert not pool.is_running
        assert all(w.state == WorkerState.STOPPED for w in pool._workers)

    def test_wait_serves_queued_connections(self):
        handler = RecordingHandler(delay=0.02)
        pool = WorkerPool(worker_count=1, handler=handler, queue_size=16)
        pool.start()
        conns = [FakeConnection() for _ in range(5)]

        for conn in conns:
            pool.submit(conn)
        pool.shutdown(wait=True, timeout=10.0)

        assert all(c.handled for c in conns)

    def test_no_wait_cancels_queued_connections(self):
        release = threading.Event()
        started = threading.Event()

        def blocking(conn):
            started.set()
            release.wait(5.0)
            conn.handled = True

        pool = WorkerPool(worker_count=1, handler=blocking, queue_size=16)
        pool.start()
        in_flight = FakeConnection()
        pool.submit(in_flight)
        assert started.wait(5.0)
        queued = [FakeConnection() for _ in range(3)]
        for conn in queued:
            pool.submit(conn)

        stopper = threading.Thread(target=pool.shutdown, kwargs={"wait": False, "timeout": 5.0})
        stopper.start()
        time.sleep(0.1)
        release.set()
        stopper.join(10.0)

        assert in_flight.handled
        assert all(c.closed and not c.handled for c in queued)
        assert pool.alive_workers == 0

    def test_submit_after_shutdown(self, handler: RecordingHandler):
        pool = WorkerPool(worker_count=1, handler=handler)
        pool.start()
        pool.shutdown()

        with pytest.raises(PoolClosedError):
            pool.submit(FakeConnection())

    def test_shutdown_twice(self, handler: RecordingHandler):
        pool = WorkerPool(worker_count=1, handler=handler)
        pool.start()

        pool.shutdown()
        pool.shutdown()

        assert pool.alive_workers == 0

    def test_start_after_shutdown(self, handler: RecordingHandler):
        pool = WorkerPool(worker_count=1, handler=handler)
        pool.shutdown()

        with pytest.raises(PoolClosedError):
            pool.start()


class TestShutdownTimeout:
    """A worker still busy when shutdown gives up must exit once it is free."""

    def test_late_worker_still_finds_stop(self):
        release = threading.Event()
        started = threading.Event()

        def blocking(conn):
            started.set()
            release.wait(5.0)

        pool = WorkerPool(worker_count=1, handler=blocking)
        pool.start()
        pool.submit(FakeConnection())
        assert started.wait(5.0)

        pool.shutdown(wait=True, timeout=0.1)
        assert pool.alive_workers == 1
        assert pool.queue_depth == 1  # its STOP is still queued

        release.set()
        pool._workers[0].join(5.0)

        assert pool.alive_workers == 0
