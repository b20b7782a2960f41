"""
=============================================================================
THREAD POOL
=============================================================================

A fixed set of worker threads pulling connection-handling tasks from one
shared FIFO queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           THREAD POOL                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop ── submit(task) ──►  ┌────────────────────────────┐   │
    │                                    │ TASK QUEUE (unbounded FIFO)│   │
    │                                    └─────────────┬──────────────┘   │
    │                                                  │ get()            │
    │                                                  ▼                  │
    │      ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐           │
    │      │ Worker 0 │ │ Worker 1 │ │   ...    │ │ Worker N │           │
    │      └──────────┘ └──────────┘ └──────────┘ └──────────┘           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The pool size is fixed at construction. When every worker is busy, new
tasks wait in the queue; submit() never blocks and never rejects while the
pool is running.

Workers stop on a "poison pill" (None) placed in the queue by shutdown().

A task that raises is logged and counted; the worker carries on with the
next task.

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
    """Worker thread states, used for stats."""
    IDLE = "idle"        # Waiting for task
    BUSY = "busy"        # Executing task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: Time the task was queued.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that runs tasks from the queue until it gets None.

        loop:
            task = queue.get()      ← blocks
            if task is None: exit
            run task, log failures
            queue.task_done()
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        # daemon=True: a stuck worker never keeps the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

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
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            elapsed = time.time() - start_time
            logger.debug(f"Worker {self.worker_id} completed task in {elapsed:.3f}s")
            self.tasks_completed += 1
        except Exception as e:
            # One bad task must not take the worker down with it
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size pool of worker threads.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ThreadPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   pool = ThreadPool(size=50)                                         │
    │   pool.start()                                                       │
    │                                                                      │
    │   pool.submit(handle_connection, args=(conn,))                       │
    │                                                                      │
    │   print(pool.stats)  # {"workers": {"busy": 3, ...}, ...}           │
    │                                                                      │
    │   pool.shutdown(wait=True)                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, size: int = 50):
        """
        Args:
            size: Number of worker threads. Must be at least 1.
        """
        if size < 1:
            raise ValueError(f"Thread pool size must be at least 1, got {size}")

        self.size = size

        # Unbounded: put() never blocks
        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue()

        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Protects _started/_shutdown
        self._started = False
        self._shutdown = False

    def start(self):
        """Create and start all worker threads. Idempotent."""
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting thread pool with {self.size} workers")

            for worker_id in range(self.size):
                worker = Worker(task_queue=self._task_queue, worker_id=worker_id)
                self._workers.append(worker)
                worker.start()

            self._started = True
            self._shutdown = False

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ):
        """
        Queue a task for execution.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        self._task_queue.put(Task(func=func, args=args, kwargs=kwargs or {}))

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        ┌─────────────────────────────────────────────────────────────────┐
        │   1. Reject new tasks                                            │
        │   2. wait=False: drop tasks that have not started yet            │
        │   3. One poison pill per worker (queued behind pending tasks)    │
        │   4. Join workers, up to ``timeout`` seconds in total            │
        └─────────────────────────────────────────────────────────────────┘

        Args:
            wait: Let queued tasks run before the workers exit.
            timeout: Upper bound on the time spent joining workers.
                     None waits for them indefinitely.
        """
        with self._lock:
            if not self._started or self._shutdown:
                return
            self._shutdown = True

        logger.info("Shutting down thread pool...")

        if not wait:
            dropped = self._drain_queue()
            if dropped:
                logger.warning(f"Dropped {dropped} queued tasks")

        for _ in self._workers:
            self._task_queue.put(None)

        deadline = None if timeout is None else time.time() + timeout
        for worker in self._workers:
            remaining = None if deadline is None else max(0.0, deadline - time.time())
            worker.join(timeout=remaining)
            if worker.is_alive():
                logger.warning(f"Worker {worker.worker_id} did not stop in time")

        tasks = self.stats["tasks"]

        with self._lock:
            self._workers.clear()
            self._started = False

        logger.info(
            f"Thread pool shutdown complete: {tasks['completed']} tasks completed, "
            f"{tasks['failed']} failed"
        )

    def _drain_queue(self) -> int:
        """Remove queued tasks without running them. Returns how many."""
        dropped = 0
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                return dropped
            self._task_queue.task_done()
            dropped += 1

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    @property
    def stats(self) -> dict:
        """Worker and task counts."""
        workers = list(self._workers)
        return {
            "workers": {
                "total": len(workers),
                "busy": sum(1 for w in workers if w.state == WorkerState.BUSY),
                "idle": sum(1 for w in workers if w.state == WorkerState.IDLE),
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }
