"""Bounded FIFO work queue for one listing run."""

import threading
from concurrent import futures
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Generic, Optional, TypeVar

from s3_object_streams.core import get_logger
from s3_object_streams.core.exceptions import S3StreamsError

logger = get_logger(__name__)

T = TypeVar("T")


class BoundedWorkQueue(Generic[T]):
    """Runs tasks on at most ``max_concurrency`` worker threads.

    Tasks start in FIFO order and may enqueue further tasks while running.
    The owner enqueues the initial tasks and then calls ``seal`` (``wait``
    does so too). ``completion`` resolves exactly once, after the queue is
    sealed and nothing is queued or running: with None if every task
    succeeded, otherwise with the first task error.

    After a failure, tasks that have not started yet are skipped and new
    tasks are dropped; tasks already running are left to finish.

    A queue serves a single run. Create a new one for every run.
    """

    def __init__(
        self,
        worker: Callable[[T], None],
        max_concurrency: int = 15,
        thread_name_prefix: str = "s3-list",
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")

        self.worker = worker
        self.max_concurrency = max_concurrency
        self.completion: Future = Future()
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrency, thread_name_prefix=thread_name_prefix
        )
        self._lock = threading.Lock()
        # Starts with the owner's hold, released by seal()
        self._pending = 1
        self._sealed = False
        self._processed = 0
        self._error: Optional[BaseException] = None
        self._drained = False

    @property
    def failed(self) -> bool:
        with self._lock:
            return self._error is not None

    @property
    def processed(self) -> int:
        """Number of tasks that ran to completion or failed."""
        with self._lock:
            return self._processed

    def enqueue(self, task: T) -> None:
        """Queue a task; it starts as soon as a worker is free."""
        with self._lock:
            if self._error is not None or self._drained:
                logger.debug("Dropping task after run ended", task=repr(task))
                return
            self._pending += 1
        self._executor.submit(self._run, task)

    def seal(self) -> None:
        """Mark the initial tasks as queued; the run may now drain."""
        with self._lock:
            if self._sealed:
                return
            self._sealed = True
        self._release()

    def wait(self, timeout: Optional[float] = None) -> None:
        """Seal the queue, block until it drains, then release the workers.

        Raises:
            The first error raised by a task, if any
        """
        self.seal()
        try:
            self.completion.result(timeout=timeout)
        finally:
            if self.completion.done():
                self._executor.shutdown(wait=True)

    def close(self) -> None:
        """Abandon the run: skip queued tasks, let running ones end, release the workers.

        Task errors are not raised.
        """
        with self._lock:
            if self._error is None:
                self._error = S3StreamsError("Work queue closed")
        self.seal()
        futures.wait([self.completion])
        self._executor.shutdown(wait=True)

    def _run(self, task: T) -> None:
        try:
            if not self.failed:
                self.worker(task)
        except Exception as e:
            with self._lock:
                if self._error is None:
                    self._error = e
            logger.error("Listing task failed", task=repr(task), error=str(e))
        finally:
            self._release(processed=True)

    def _release(self, processed: bool = False) -> None:
        with self._lock:
            self._pending -= 1
            if processed:
                self._processed += 1
            drained = self._pending == 0 and not self._drained
            if drained:
                self._drained = True
            error = self._error

        if drained:
            if error is None:
                self.completion.set_result(None)
            else:
                self.completion.set_exception(error)
