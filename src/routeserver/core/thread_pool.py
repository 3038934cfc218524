"""
=============================================================================
THREAD POOL
=============================================================================

Connections are handled by a fixed-bounds pool of worker threads pulling
from one bounded queue, so a slow handler only ever occupies one worker:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Thread Pool                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop ──submit()──► [conn 1] [conn 2] [conn 3] ...          │
    │                             bounded queue.Queue (FIFO)               │
    │                                    │                                 │
    │                                    ▼ get()                           │
    │        ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐          │
    │        │ Worker-0 │ │ Worker-1 │ │ Worker-2 │ │ Worker-3 │  ...     │
    │        │  idle    │ │  busy    │ │  busy    │ │  idle    │          │
    │        └──────────┘ └──────────┘ └──────────┘ └──────────┘          │
    │                                                                      │
    │   min_workers start with the pool. When every worker is busy and    │
    │   work is queued, one more is added, up to max_workers.             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Shutdown drains the queue, then sends one None ("poison pill") per worker.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs), stamped with its submit time."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None
    on_stale: Optional[Callable[[], None]] = None
    submitted_at: float = field(default_factory=time.time)

    @property
    def is_stale(self) -> bool:
        """Waited in the queue longer than its timeout."""
        return self.timeout is not None and time.time() - self.submitted_at > self.timeout


class Worker(threading.Thread):
    """
    Pulls tasks until it gets the poison pill or is told to stop.

    A failing task is logged and counted; it never kills the worker.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int, idle_timeout: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            if task.is_stale:
                logger.warning(
                    f"Task dropped after waiting {start_time - task.submitted_at:.2f}s "
                    f"(timeout {task.timeout}s)"
                )
                self.tasks_failed += 1
                if task.on_stale is not None:
                    task.on_stale()
                return

            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s")

        except Exception as e:
            logger.exception(f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}")
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        pool.shutdown(wait=True)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0
    ):
        """
        Args:
            min_workers: Workers started with the pool and kept for its lifetime.
            max_workers: Upper bound when scaling up under load.
            queue_size: Capacity of the task queue; submit() blocks or fails when full.
            idle_timeout: How often an idle worker wakes to check for shutdown.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        # Reentrant: _maybe_scale_up() holds it while calling _add_worker().
        self._lock = threading.RLock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        with self._lock:
            if self._started:
                return
            logger.info(f"Starting thread pool with {self.min_workers} workers")
            for _ in range(self.min_workers):
                self._add_worker()
            self._started = True
            self._shutdown = False

    def _add_worker(self) -> Worker:
        with self._lock:
            if len(self._workers) >= self.max_workers:
                raise RuntimeError("Maximum workers reached")

            worker = Worker(self._task_queue, self._next_worker_id, self.idle_timeout)
            self._next_worker_id += 1
            self._workers.append(worker)
            worker.start()
            return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None,
        on_stale: Optional[Callable[[], None]] = None
    ) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        on_stale is called instead of func when the task waited in the queue
        longer than timeout.

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            RuntimeError: Pool not started or shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {}, timeout=timeout, on_stale=on_stale)

        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker when all are busy and work is waiting."""
        with self._lock:
            total = len(self._workers)
            if total >= self.max_workers or self._task_queue.qsize() == 0:
                return
            if self.busy_workers == total:
                logger.debug(f"Scaling up: {total} -> {total + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks run before stopping the workers.
            timeout: Give up waiting for the queue after this many seconds.
        """
        with self._lock:
            if not self._started or self._shutdown:
                return
            self._shutdown = True

        logger.info("Shutting down thread pool...")

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)

        for _ in workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break

        for worker in workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
            self._started = False

        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queue_size(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
