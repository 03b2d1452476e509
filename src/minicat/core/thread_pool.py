"""
=============================================================================
THREAD POOL
=============================================================================

A fixed set of worker threads pulling tasks from one shared queue. The
HTTP server submits one task per accepted connection; one worker owns
that connection until it is closed.

=============================================================================
ARCHITECTURE
=============================================================================

    accept loop ── submit(task) ──►  ┌──────────────────────────┐
                                     │ TASK QUEUE (queue.Queue) │
                                     │ [conn 7] [conn 8] ...    │
                                     └────────────┬─────────────┘
                                                  │ get()
                    ┌─────────────┬───────────────┼─────────────┐
                    ▼             ▼               ▼             ▼
               ┌──────────┐ ┌──────────┐   ┌──────────┐  ┌──────────┐
               │ Worker 0 │ │ Worker 1 │   │ Worker 2 │  │ Worker 3 │
               └──────────┘ └──────────┘   └──────────┘  └──────────┘

    - min_workers threads start with the pool
    - one more is added (up to max_workers) when every worker is busy
      and tasks are waiting
    - submit() returns False when the queue is full and block=False

=============================================================================
SHUTDOWN: THE POISON PILL
=============================================================================

    pool.shutdown()
        └─ wait for the queue to drain (bounded by timeout)
        └─ cancel whatever is still queued (Task.on_cancel)
        └─ put None once per worker
        └─ a worker that gets None leaves its loop and exits

=============================================================================
"""

import threading
import queue
import time
import logging
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
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: When the task was queued.
        on_cancel: Called instead of func if the pool shuts down while the
                   task is still queued, so it can release what it owns.

    A queued task either runs or is cancelled; it is never silently dropped.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)
    on_cancel: Optional[Callable[[], Any]] = None

    def cancel(self):
        if self.on_cancel is None:
            return
        try:
            self.on_cancel()
        except Exception as e:
            logger.exception(f"Task cancel callback failed: {e}")


class Worker(threading.Thread):
    """
    Worker thread that runs tasks until it receives the poison pill.

        get() ──► None? ──yes──► exit
                    │
                    no
                    ▼
              run task (errors logged, worker survives)
                    ▼
              task_done() ──► back to get()
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        # daemon=True: never keeps the process alive on its own
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
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s "
                f"(queued {start_time - task.submitted_at:.3f}s)"
            )

        except Exception as e:
            # Keep the worker alive; the task owner should have handled this
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")

        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Pool of worker threads with a bounded task queue.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)

        self._workers: list = []
        self._lock = threading.Lock()  # Protects _workers
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout,
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = False,
        on_cancel: Optional[Callable[[], Any]] = None,
    ) -> bool:
        """
        Queue a task.

        on_cancel runs if shutdown() discards the task before a worker
        picks it up.

        Returns:
            True if queued, False if the queue was full and block is False.

        Raises:
            RuntimeError: the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {}, on_cancel=on_cancel)

        try:
            self._task_queue.put(task, block=block)
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            busy = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            if (busy == len(self._workers)
                    and len(self._workers) < self.max_workers
                    and self._task_queue.qsize() > 0):
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first.
            timeout: Upper bound on the wait, in seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)

        for worker in self._workers:
            worker.shutdown()

        cancelled = self._cancel_queued()
        if cancelled:
            logger.warning(f"Cancelled {cancelled} queued tasks")

        for worker in self._workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass  # The shutdown flag stops the worker on its next poll

        for worker in self._workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    def _cancel_queued(self) -> int:
        """Empty the queue, cancelling every task nobody picked up."""
        count = 0
        while True:
            try:
                task = self._task_queue.get_nowait()
            except queue.Empty:
                return count
            try:
                if task is not None:
                    task.cancel()
                    count += 1
            finally:
                self._task_queue.task_done()

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def stats(self) -> dict:
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
