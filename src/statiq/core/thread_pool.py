"""
=============================================================================
WORKER POOL
=============================================================================

A fixed set of worker threads pulling connections from a bounded queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──submit()──►  [ queue (queue_size) ]                 │
    │                                   │    │    │                        │
    │                                   ▼    ▼    ▼                        │
    │                               Worker Worker Worker   (workers)       │
    │                                                                      │
    │   queue full → submit() returns False → caller answers 503          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Static serving is I/O bound (stat, read, send), so threads are a good fit
despite the GIL: a thread blocked on disk or socket releases it.

The pool never grows. Overload is answered at the door with 503 instead
of queueing work without bound.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args)."""

    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Runs tasks until it receives the poison pill (None).

    A failing task is logged and counted; it never kills the worker.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"statiq-worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        self.state = WorkerState.BUSY
        start = time.time()
        try:
            task.func(*task.args)
            self.tasks_completed += 1
        except Exception:
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start:.3f}s"
            )
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size thread pool with a bounded task queue.

    Usage:
        pool = ThreadPool(workers=8, queue_size=256)
        pool.start()
        if not pool.submit(handle_connection, conn):
            reject(conn)
        pool.shutdown()
    """

    def __init__(self, workers: int = 8, queue_size: int = 256):
        self.num_workers = workers
        self.queue_size = queue_size
        self._queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False

    def start(self):
        with self._lock:
            if self._started:
                return
            logger.info(f"Starting {self.num_workers} workers")
            for worker_id in range(self.num_workers):
                worker = Worker(self._queue, worker_id)
                self._workers.append(worker)
                worker.start()
            self._started = True

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue func(*args) without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: if the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._queue.put_nowait(Task(func=func, args=args))
            return True
        except queue.Full:
            return False

    def shutdown(self, timeout: Optional[float] = 30.0):
        """
        Let queued tasks finish, then stop every worker.

        Workers exit on the poison pill, which sits behind any queued
        work, so pending tasks run first. Each worker gets `timeout`
        seconds to finish.
        """
        with self._lock:
            if not self._started:
                return
            self._shutting_down = True

        logger.info("Shutting down thread pool...")
        for _ in self._workers:
            self._queue.put(None)
        for worker in self._workers:
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning(f"Worker {worker.worker_id} did not stop in time")

        self._workers.clear()
        self._started = False
        self._shutting_down = False
        logger.info("Thread pool shutdown complete")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "pending": self.pending,
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
