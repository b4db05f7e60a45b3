"""
Bounded-concurrency worker pool.

A fixed set of worker threads pulls items from one bounded intake queue and
runs a caller-supplied handler for each of them. Handler failures are caught
per worker, so one bad item never takes down the pool or its siblings.
"""

import queue
import threading
import time
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from crawlkit.config import WorkerPoolConfig
from crawlkit.utils.errors import ClosedError, ConfigurationError, handle_error
from crawlkit.utils.logging import get_logger
from .models import WorkerState, WorkerStatus
from .thread_safe import PendingTracker, ThreadSafeCounter


logger = get_logger(__name__)

T = TypeVar("T")

_EMPTY = object()


class WorkerThread(threading.Thread):
    """Individual worker thread running the pool handler for each intake item."""

    def __init__(
        self,
        worker_id: str,
        task_queue: queue.Queue,
        resubmit_queue: queue.Queue,
        handler: Callable[[Any], None],
        result_callback: Callable[[Any, Optional[Exception]], None],
        shutdown_event: threading.Event,
        cancel_event: threading.Event,
        poll_interval: float
    ):
        """
        Initialize worker thread.

        Args:
            worker_id: Unique identifier for this worker
            task_queue: Shared intake queue to pull items from
            resubmit_queue: Unbounded queue of items added by handlers; drained first
            handler: Function to run for each item
            result_callback: Called after every item with the failure (or None)
            shutdown_event: Set once the pool stops accepting items; the worker
                exits when it is set and the intake is empty
            cancel_event: Set to stop the worker after its current item
            poll_interval: Seconds to block on the intake before re-checking events
        """
        super().__init__(name=f"PoolWorker-{worker_id}", daemon=True)

        self.worker_id = worker_id
        self.task_queue = task_queue
        self.resubmit_queue = resubmit_queue
        self.handler = handler
        self.result_callback = result_callback
        self.shutdown_event = shutdown_event
        self.cancel_event = cancel_event
        self.poll_interval = poll_interval

        self.status = WorkerStatus(worker_id=worker_id)
        self.logger = get_logger(f"{__name__}.{worker_id}")

    def run(self) -> None:
        """Main worker loop."""
        self.logger.debug(f"Worker {self.worker_id} starting")
        self.status.state = WorkerState.IDLE
        self.status.update_activity()

        try:
            while not self.cancel_event.is_set():
                source, item = self._get_next_item()
                if item is _EMPTY:
                    if self.shutdown_event.is_set():
                        break
                    continue

                self._process_item(source, item)
        finally:
            self.status.state = WorkerState.STOPPED
            self.status.update_activity()
            self.logger.debug(f"Worker {self.worker_id} stopped")

    def _get_next_item(self) -> Tuple[Optional[queue.Queue], Any]:
        try:
            return self.resubmit_queue, self.resubmit_queue.get_nowait()
        except queue.Empty:
            pass
        try:
            return self.task_queue, self.task_queue.get(timeout=self.poll_interval)
        except queue.Empty:
            return None, _EMPTY

    def _process_item(self, source: queue.Queue, item: Any) -> None:
        """
        Run the handler for one item, isolating any failure it raises.

        Args:
            source: Queue the item was taken from
            item: Item to hand to the handler
        """
        start_time = time.monotonic()
        self.status.start_task()

        try:
            self.handler(item)
        except Exception as e:
            execution_time = time.monotonic() - start_time
            self.status.fail_task(str(e), execution_time)
            handle_error(e, self.logger, {"worker_id": self.worker_id, "item": repr(item)}, reraise=False)
            self.result_callback(item, e)
        else:
            self.status.complete_task(time.monotonic() - start_time)
            self.result_callback(item, None)
        finally:
            source.task_done()


class WorkerPool(Generic[T]):
    """Runs a handler for every submitted item with at most ``concurrency`` in flight."""

    def __init__(
        self,
        concurrency: int,
        handler: Callable[[T], None],
        queue_size: Optional[int] = None,
        error_handler: Optional[Callable[[T, Exception], None]] = None,
        poll_interval: float = 0.1,
        shutdown_timeout: float = 10.0
    ):
        """
        Initialize worker pool.

        Args:
            concurrency: Number of worker threads, at least 1
            handler: Function run once per submitted item
            queue_size: Intake capacity; defaults to ``concurrency``, 0 means unbounded
            error_handler: Optional sink receiving ``(item, exception)`` for failed items
            poll_interval: Seconds between checks of the shutdown and cancel signals
            shutdown_timeout: Seconds ``close`` waits for each worker to exit

        Raises:
            ConfigurationError: If concurrency or queue_size is invalid
        """
        if not isinstance(concurrency, int) or concurrency < 1:
            raise ConfigurationError(
                "Worker pool concurrency must be at least 1",
                {"concurrency": concurrency}
            )
        if queue_size is None:
            queue_size = concurrency
        if queue_size < 0:
            raise ConfigurationError(
                "Worker pool queue_size must not be negative",
                {"queue_size": queue_size}
            )
        if poll_interval <= 0:
            raise ConfigurationError(
                "Worker pool poll_interval must be positive",
                {"poll_interval": poll_interval}
            )

        self.concurrency = concurrency
        self.handler = handler
        self.error_handler = error_handler
        self.poll_interval = poll_interval
        self.shutdown_timeout = shutdown_timeout

        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        # Items added from inside a handler bypass the intake bound
        self._resubmit_queue: queue.Queue = queue.Queue()
        self._workers: List[WorkerThread] = []
        self._shutdown_event = threading.Event()
        self._cancel_event = threading.Event()

        self._pending = PendingTracker()
        self._adding = PendingTracker()
        self._completed = ThreadSafeCounter()
        self._failed = ThreadSafeCounter()

        self._state_lock = threading.Lock()
        self._started = False
        self._closed = False

        logger.debug(f"WorkerPool initialized with concurrency={concurrency}, queue_size={queue_size}")

    @classmethod
    def from_config(
        cls,
        config: WorkerPoolConfig,
        handler: Callable[[T], None],
        error_handler: Optional[Callable[[T, Exception], None]] = None
    ) -> "WorkerPool[T]":
        """Create a pool from a ``WorkerPoolConfig`` section."""
        return cls(
            concurrency=config.concurrency,
            handler=handler,
            queue_size=config.queue_size,
            error_handler=error_handler,
            poll_interval=config.poll_interval,
            shutdown_timeout=config.shutdown_timeout
        )

    def start(self, cancel_event: Optional[threading.Event] = None) -> None:
        """
        Launch the worker threads.

        Args:
            cancel_event: Optional external cancellation signal; once set, workers
                exit after their current item and ``wait`` stops blocking

        Raises:
            ClosedError: If the pool has already been closed
        """
        with self._state_lock:
            if self._closed:
                raise ClosedError("Cannot start a closed worker pool")
            if self._started:
                logger.warning("WorkerPool.start called more than once; ignoring")
                return
            if cancel_event is not None:
                self._cancel_event = cancel_event

            for i in range(self.concurrency):
                worker = WorkerThread(
                    worker_id=f"worker_{i}",
                    task_queue=self._queue,
                    resubmit_queue=self._resubmit_queue,
                    handler=self.handler,
                    result_callback=self._on_item_finished,
                    shutdown_event=self._shutdown_event,
                    cancel_event=self._cancel_event,
                    poll_interval=self.poll_interval
                )
                self._workers.append(worker)
                worker.start()

            self._started = True

        logger.info(f"Started {self.concurrency} worker threads")

    def add(self, item: T) -> None:
        """
        Submit one item for execution, blocking while the intake is full.

        Calls made from this pool's own handlers never block: those items skip
        the intake bound, so a handler fanning out cannot deadlock the workers.

        Args:
            item: Item passed unchanged to the handler

        Raises:
            ClosedError: If the pool is closed, or gets closed or cancelled while
                the caller is waiting for intake capacity
        """
        with self._state_lock:
            if self._closed:
                raise ClosedError("Cannot add to a closed worker pool")
            self._adding.add()
            self._pending.add()

        try:
            if self._is_own_worker(threading.current_thread()):
                self._resubmit_queue.put(item)
                return

            while True:
                try:
                    self._queue.put(item, timeout=self.poll_interval)
                    return
                except queue.Full:
                    if self._closed or self._cancel_event.is_set():
                        self._pending.done()
                        raise ClosedError("Worker pool closed while waiting for intake capacity")
        finally:
            self._adding.done()

    def _is_own_worker(self, thread: threading.Thread) -> bool:
        return isinstance(thread, WorkerThread) and thread.task_queue is self._queue

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every submitted item has been handled.

        Items submitted by handlers while the pool drains are waited for too.
        Producers must have finished calling ``add`` before relying on the result.

        Args:
            timeout: Optional maximum number of seconds to wait

        Returns:
            True if the pool reached quiescence, False on timeout or cancellation
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            slice_timeout = self.poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return self._pending.get_value() == 0
                slice_timeout = min(slice_timeout, remaining)

            if self._pending.wait_for_zero(slice_timeout, self._cancel_event):
                return True
            if self._cancel_event.is_set():
                logger.warning(f"WorkerPool.wait interrupted by cancellation with {self._pending.get_value()} items pending")
                return False

    def close(self) -> None:
        """Stop accepting items, let workers drain the intake, and release them. Idempotent."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True

        # Producers blocked on a full intake either land their item or give up
        while not self._adding.wait_for_zero(self.poll_interval, self._cancel_event):
            if self._cancel_event.is_set():
                break

        self._shutdown_event.set()

        current = threading.current_thread()
        stopped = 0
        for worker in self._workers:
            if worker is current:
                # Called from a handler; this worker exits once the handler returns
                continue
            worker.join(timeout=self.shutdown_timeout)
            if worker.is_alive():
                logger.warning(f"Worker {worker.worker_id} did not stop within {self.shutdown_timeout}s")
            else:
                stopped += 1

        if stopped == len(self._workers):
            self._discard_leftovers()

        self._pending.wake()
        logger.info(f"WorkerPool closed: {stopped}/{len(self._workers)} workers stopped")

    def _discard_leftovers(self) -> None:
        """Drop items nobody will run (pool never started, or cancelled)."""
        discarded = 0
        for source in (self._resubmit_queue, self._queue):
            while True:
                try:
                    source.get_nowait()
                except queue.Empty:
                    break
                source.task_done()
                discarded += 1

        if discarded:
            self._pending.done(discarded)
            logger.warning(f"WorkerPool discarded {discarded} unprocessed items on close")

    def _on_item_finished(self, item: T, error: Optional[Exception]) -> None:
        if error is None:
            self._completed.increment()
        else:
            self._failed.increment()
            if self.error_handler is not None:
                try:
                    self.error_handler(item, error)
                except Exception as sink_error:
                    logger.error(f"Error handler raised while reporting {item!r}: {sink_error}")
        self._pending.done()

    @property
    def closed(self) -> bool:
        return self._closed

    def get_worker_status(self) -> Dict[str, WorkerStatus]:
        """Get status of all workers keyed by worker id."""
        return {worker.worker_id: worker.status for worker in self._workers}

    def get_stats(self) -> Dict[str, Any]:
        """
        Get pool statistics.

        Returns:
            Dictionary with pool statistics
        """
        timings = [w.status.get_average_task_time() for w in self._workers
                   if w.status.tasks_completed + w.status.tasks_failed]
        return {
            "concurrency": self.concurrency,
            "pending": self._pending.get_value(),
            "queued": self._queue.qsize() + self._resubmit_queue.qsize(),
            "completed": self._completed.get_value(),
            "failed": self._failed.get_value(),
            "average_task_time": sum(timings) / len(timings) if timings else 0.0,
            "running_workers": sum(1 for w in self._workers if w.is_alive()),
            "closed": self._closed,
        }

    def __enter__(self) -> "WorkerPool[T]":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
