# inventory_engine/orchestration/executor.py

"""
Bounded worker pool for parallel analysis phases.

ThreadPoolExecutor queues without limit; here a submission is only
accepted while fewer than max_workers + queue_capacity tasks are pending
or running. Once the pool is full, or after shutdown, submit() raises
ExecutorSaturatedError instead of blocking the caller.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Callable, Set

from inventory_engine.config.settings import EngineSettings
from inventory_engine.exceptions import ExecutorSaturatedError

logger = logging.getLogger(__name__)


class BoundedExecutor:
    """Fixed-size thread pool with a bounded submission queue."""

    def __init__(
        self,
        max_workers: int = 8,
        queue_capacity: int = 100,
        thread_name_prefix: str = 'IntegratedAnalysis-',
        shutdown_wait_seconds: float = 60.0
    ):
        self.max_workers = max_workers
        self.queue_capacity = queue_capacity
        self.shutdown_wait_seconds = shutdown_wait_seconds

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._slots = threading.BoundedSemaphore(max_workers + queue_capacity)
        self._pending: Set[Future] = set()
        self._shutdown = False
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> 'BoundedExecutor':
        return cls(
            max_workers=settings.executor_max_workers,
            queue_capacity=settings.executor_queue_capacity,
            thread_name_prefix=settings.thread_name_prefix,
            shutdown_wait_seconds=settings.executor_shutdown_wait_seconds,
        )

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Schedule fn(*args, **kwargs).

        Raises:
            ExecutorSaturatedError: Queue full or executor shut down
        """
        with self._lock:
            if self._shutdown:
                raise ExecutorSaturatedError("Analysis executor has been shut down")
            if not self._slots.acquire(blocking=False):
                raise ExecutorSaturatedError(
                    f"Analysis queue is full ({self.max_workers} workers, "
                    f"{self.queue_capacity} queued)"
                )
            try:
                future = self._executor.submit(fn, *args, **kwargs)
            except RuntimeError as exc:
                self._slots.release()
                raise ExecutorSaturatedError(str(exc)) from exc
            self._pending.add(future)

        future.add_done_callback(self._release)
        return future

    def _release(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        self._slots.release()

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop accepting work. With wait=True, in-flight and queued tasks
        are allowed to finish.
        """
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
        logger.info("Shutting down analysis executor")
        self._executor.shutdown(wait=False)
        if not wait:
            return

        with self._lock:
            pending = set(self._pending)
        _, not_done = wait_futures(pending, timeout=self.shutdown_wait_seconds)
        if not_done:
            logger.warning(
                f"{len(not_done)} analysis tasks still running after "
                f"{self.shutdown_wait_seconds}s shutdown wait"
            )

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown
