"""
=============================================================================
WORKER POOL
=============================================================================

A fixed set of worker threads consuming accepted connections from a shared,
bounded queue. This decouples ACCEPTING connections (one thread, fast) from
SERVING them (many threads, blocked on disk and network I/O).

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          WorkerPool                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Listener ── submit(conn) ──┐                                       │
    │                              ▼                                       │
    │   ┌─────────────────────────────────────────────────────────────┐   │
    │   │                      WORK QUEUE                              │   │
    │   │  [WorkItem] [WorkItem] [WorkItem] ...        (max queue_size)│   │
    │   │                                                              │   │
    │   │  • queue.Queue: thread-safe, FIFO                            │   │
    │   │  • get() blocks when empty (workers idle)                    │   │
    │   │  • put() blocks when full  (accept loop stalls)              │   │
    │   └──────────────────────┬──────────────────────────────────────┘   │
    │                          │ get()                                     │
    │                          ▼                                           │
    │   ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐               │
    │   │ Worker 0 │ │ Worker 1 │ │ Worker 2 │ │ Worker 3 │               │
    │   │ (idle)   │ │ (busy)   │ │ (busy)   │ │ (idle)   │               │
    │   └──────────┘ └──────────┘ └──────────┘ └──────────┘               │
    │                                                                      │
    │   Each WorkItem is taken by exactly one worker, so no two workers    │
    │   ever touch the same connection.                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BACK-PRESSURE
=============================================================================

The queue is bounded. When every worker is busy and the queue is full,
submit() blocks, which stalls the accept loop, which lets connections pile
up in the kernel's listen backlog, which eventually makes new clients see
"connection refused". Load is pushed back towards the clients instead of
growing an in-memory queue without limit.

=============================================================================
SHUTDOWN
=============================================================================

    shutdown(wait=True)                 shutdown(wait=False)
    ───────────────────                 ────────────────────
    1. Refuse new submissions           1. Refuse new submissions
    2. Queue one STOP per worker        2. Close every queued connection
       behind the pending items         3. Queue one STOP per worker
       (FIFO: pending work drains)      4. Join every worker
    3. Join every worker                5. Close anything that slipped in
    4. Close anything that slipped in

Workers finish the request they are on before picking up their STOP.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..errors import PoolClosedError
from .connection import Connection


logger = logging.getLogger(__name__)

ConnectionHandler = Callable[[Connection], None]

# Placed in the queue once per worker to make it exit
_STOP = object()


class WorkerState(Enum):
    IDLE = "idle"        # Waiting for a work item
    BUSY = "busy"        # Serving a connection
    STOPPED = "stopped"  # Thread exited


@dataclass
class WorkItem:
    """One accepted connection waiting for a worker."""
    connection: Connection
    submitted_at: float = field(default_factory=time.monotonic)


class Worker(threading.Thread):
    """
    Worker thread that serves connections from the queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Worker Loop                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. item = queue.get()             (blocks while queue is empty)    │
    │   2. STOP?            → exit                                         │
    │   3. Deadline passed? → close connection, count as cancelled         │
    │   4. handler(connection)                                             │
    │        └── exception? → log it, count as failed, keep running        │
    │   5. Close connection (no-op if the handler already did)             │
    │   6. Back to 1                                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, work_queue: queue.Queue, worker_id: int, handler: ConnectionHandler):
        # daemon=True: a worker stuck in I/O can't keep the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.work_queue = work_queue
        self.worker_id = worker_id
        self.handler = handler

        self.state = WorkerState.IDLE

        # Metrics
        self.items_completed = 0
        self.items_failed = 0
        self.items_cancelled = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            item = self.work_queue.get()
            try:
                if item is _STOP:
                    break
                self._serve(item)
            finally:
                self.work_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _serve(self, item: WorkItem):
        conn = item.connection
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        try:
            # ─────────────────────────────────────────────────────────────
            # STALE ITEM: the deadline ran out while it sat in the queue
            # ─────────────────────────────────────────────────────────────
            if conn.expired:
                waited = start_time - item.submitted_at
                logger.warning(
                    f"[{conn.id}] Dropping connection that expired in queue "
                    f"(waited {waited:.2f}s)"
                )
                self.items_cancelled += 1
                return

            self.handler(conn)

            elapsed = time.monotonic() - start_time
            logger.debug(f"Worker {self.worker_id} served [{conn.id}] in {elapsed:.3f}s")
            self.items_completed += 1

        except Exception as e:
            # One bad connection must never take the worker down with it
            logger.exception(f"Worker {self.worker_id} handler failed for [{conn.id}]: {e}")
            self.items_failed += 1

        finally:
            conn.close()
            self.state = WorkerState.IDLE


class WorkerPool:
    """
    Fixed-size pool of worker threads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      WorkerPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   pool = WorkerPool(worker_count=4, handler=pipeline.handle)        │
    │   pool.start()                                                       │
    │                                                                      │
    │   pool.submit(conn)               # blocks while the queue is full   │
    │   pool.submit(conn, block=False)  # False if the queue is full       │
    │                                                                      │
    │   pool.shutdown(wait=True)        # drain, then join every worker    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, worker_count: int, handler: ConnectionHandler, queue_size: int = 64):
        """
        Args:
            worker_count: Number of worker threads. Fixed for the pool's
                          lifetime.
            handler: Called once per connection, on a worker thread.
            queue_size: Maximum pending connections before submit() blocks.
        """
        if worker_count < 1:
            raise ValueError("worker_count must be >= 1")

        self.worker_count = worker_count
        self.handler = handler
        self.queue_size = queue_size

        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Guards _started / _closed
        self._started = False
        self._closed = False

    def start(self):
        """Spawn the worker threads. Calling it again is a no-op."""
        with self._lock:
            if self._started:
                return
            if self._closed:
                raise PoolClosedError("Worker pool has been shut down")

            logger.info(f"Starting worker pool with {self.worker_count} workers")

            for worker_id in range(self.worker_count):
                worker = Worker(self._queue, worker_id, self.handler)
                self._workers.append(worker)
                worker.start()

            self._started = True

    def submit(
        self,
        connection: Connection,
        block: bool = True,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue a connection for processing.

        Args:
            connection: The accepted connection. Ownership passes to the pool.
            block: Wait for space when the queue is full.
            timeout: Maximum wait when blocking. None = wait as long as needed.

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            PoolClosedError: The pool is not running.
        """
        if not self._started or self._closed:
            raise PoolClosedError("Worker pool is not accepting work")

        try:
            self._queue.put(WorkItem(connection), block=block, timeout=timeout)
            return True
        except queue.Full:
            return False

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool and join every worker.

        Args:
            wait: True lets queued connections be served first. False closes
                  them unserved.
            timeout: Overall time budget for placing STOP markers and
                     joining workers. None = no limit.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if not self._started:
            return

        logger.info("Shutting down worker pool...")
        deadline = None if timeout is None else time.monotonic() + timeout

        if not wait:
            cancelled = self._cancel_pending()
            if cancelled:
                logger.info(f"Cancelled {cancelled} pending connections")

        # ─────────────────────────────────────────────────────────────────
        # ONE STOP PER WORKER
        # ─────────────────────────────────────────────────────────────────
        # FIFO: every item already queued is handed out before a STOP.
        for _ in self._workers:
            try:
                self._queue.put(_STOP, timeout=self._remaining(deadline))
            except queue.Full:
                logger.warning("Shutdown timeout while stopping workers")
                break

        for worker in self._workers:
            worker.join(timeout=self._remaining(deadline))
            if worker.is_alive():
                logger.warning(f"Worker {worker.worker_id} did not stop in time")

        # Anything a racing submit() slipped in after the STOPs
        self._cancel_pending()

        logger.info("Worker pool shutdown complete")

    def _cancel_pending(self) -> int:
        """
        Close every connection still waiting in the queue.

        STOP markers are put back: a worker that has not reached its STOP
        yet (join timed out) still needs one to exit.
        """
        cancelled = 0
        stops = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                if item is _STOP:
                    stops += 1
                else:
                    item.connection.close()
                    cancelled += 1
            finally:
                self._queue.task_done()

        for _ in range(stops):
            try:
                self._queue.put_nowait(_STOP)
            except queue.Full:
                logger.warning("Queue full, could not restore STOP marker")
                break

        return cancelled

    @staticmethod
    def _remaining(deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._started and not self._closed

    @property
    def queue_depth(self) -> int:
        """Connections waiting for a worker."""
        return self._queue.qsize()

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def alive_workers(self) -> int:
        return sum(1 for w in self._workers if w.is_alive())

    @property
    def stats(self) -> dict:
        """Worker and item counts, for logs and tests."""
        return {
            "workers": {
                "total": len(self._workers),
                "alive": self.alive_workers,
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "items": {
                "queued": self.queue_depth,
                "completed": sum(w.items_completed for w in self._workers),
                "failed": sum(w.items_failed for w in self._workers),
                "cancelled": sum(w.items_cancelled for w in self._workers),
            },
        }
