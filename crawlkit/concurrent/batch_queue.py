"""
Size-or-time batching queue.

Producers append items under a short lock. When the buffer reaches the batch
size the producer swaps it out for an empty one and hands the full list to a
FIFO of ready batches; a single coordinating thread delivers ready batches to
the flush callback and cuts a partial batch whenever the interval elapses.
The flush callback therefore never runs inside the producer critical section.
"""

import queue
import threading
import time
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from crawlkit.config import BatchQueueConfig
from crawlkit.utils.errors import ClosedError, ConfigurationError, handle_error
from crawlkit.utils.logging import get_logger
from .models import BatchStats


logger = get_logger(__name__)

T = TypeVar("T")

# Wakes the coordinator without carrying a batch
_WAKE = object()


class BatchingQueue(Generic[T]):
    """Buffers items from many producers and flushes them in batches."""

    def __init__(
        self,
        batch_size: int,
        interval: float,
        flush: Callable[[List[T]], None],
        poll_interval: float = 0.1
    ):
        """
        Initialize batching queue.

        Args:
            batch_size: Number of buffered items that triggers a flush, at least 1
            interval: Seconds after the last flush that trigger a flush, > 0
            flush: Sink called with each batch (a list in arrival order)
            poll_interval: Upper bound on how long the coordinator sleeps before
                re-checking the cancellation signal

        Raises:
            ConfigurationError: If batch_size or interval is invalid
        """
        if not isinstance(batch_size, int) or batch_size < 1:
            raise ConfigurationError(
                "Batch size must be at least 1",
                {"batch_size": batch_size}
            )
        if interval is None or interval <= 0:
            raise ConfigurationError(
                "Batch interval must be positive",
                {"interval": interval}
            )
        if poll_interval <= 0:
            raise ConfigurationError(
                "Batch poll_interval must be positive",
                {"poll_interval": poll_interval}
            )

        self.batch_size = batch_size
        self.interval = interval
        self.flush = flush
        self.poll_interval = poll_interval

        self._lock = threading.Lock()
        self._buffer: List[T] = []
        self._ready: queue.Queue = queue.Queue()

        # Serializes deliveries across threads; reentrant for a sink that closes the queue
        self._flush_lock = threading.RLock()

        self._stop_event = threading.Event()
        self._cancel_event = threading.Event()
        self._coordinator: Optional[threading.Thread] = None
        self._closed = False

        self.stats = BatchStats()

        logger.debug(f"BatchingQueue initialized with batch_size={batch_size}, interval={interval}s")

    @classmethod
    def from_config(cls, config: BatchQueueConfig, flush: Callable[[List[T]], None]) -> "BatchingQueue[T]":
        """Create a queue from a ``BatchQueueConfig`` section."""
        return cls(
            batch_size=config.batch_size,
            interval=config.interval_seconds,
            flush=flush,
            poll_interval=config.poll_interval
        )

    def start(self, cancel_event: Optional[threading.Event] = None) -> None:
        """
        Start the coordinating thread.

        Args:
            cancel_event: Optional external cancellation signal

        Raises:
            ClosedError: If the queue has already been closed
        """
        with self._lock:
            if self._closed:
                raise ClosedError("Cannot start a closed batching queue")
            if self._coordinator is not None:
                logger.warning("BatchingQueue.start called more than once; ignoring")
                return
            if cancel_event is not None:
                self._cancel_event = cancel_event

            self._coordinator = threading.Thread(
                target=self._run,
                name="BatchCoordinator",
                daemon=True
            )
            self._coordinator.start()

        logger.info("Batch coordinator started")

    def add(self, item: T) -> None:
        """
        Append one item; safe to call from any number of threads.

        Raises:
            ClosedError: If the queue has been closed
        """
        with self._lock:
            if self._closed:
                raise ClosedError("Cannot add to a closed batching queue")
            self._buffer.append(item)
            if len(self._buffer) >= self.batch_size:
                self._cut_locked()

    def close(self) -> None:
        """
        Stop the coordinator and flush everything still buffered.

        Only the first call does the work; later calls, including one made by
        the flush callback itself, return immediately.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._buffer:
                self._cut_locked()

        self._stop_event.set()
        self._ready.put(_WAKE)
        if self._coordinator is not None and self._coordinator is not threading.current_thread():
            self._coordinator.join()

        self._drain_ready()

        logger.info(
            f"BatchingQueue closed after {self.stats.batches_flushed} batches "
            f"({self.stats.items_flushed} items)"
        )

    def _cut_locked(self) -> None:
        """Swap the buffer for a fresh one and queue the old one. Caller holds ``_lock``."""
        batch, self._buffer = self._buffer, []
        self._ready.put(batch)

    def _cut(self) -> None:
        with self._lock:
            if self._buffer:
                self._cut_locked()

    def _run(self) -> None:
        """Coordinator loop: deliver full batches, cut partial ones on the interval."""
        logger.debug("Batch coordinator loop started")
        deadline = time.monotonic() + self.interval

        while not self._stop_event.is_set() and not self._cancel_event.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._cut()
                self._drain_ready()
                deadline = time.monotonic() + self.interval
                continue

            try:
                batch = self._ready.get(timeout=min(remaining, self.poll_interval))
            except queue.Empty:
                continue

            if batch is _WAKE:
                continue

            self._deliver(batch)
            deadline = time.monotonic() + self.interval

        logger.debug("Batch coordinator loop stopped")

    def _drain_ready(self) -> None:
        while True:
            try:
                batch = self._ready.get_nowait()
            except queue.Empty:
                return
            if batch is not _WAKE:
                self._deliver(batch)

    def _deliver(self, batch: List[T]) -> None:
        """Hand one batch to the sink; failures are logged and never retried."""
        with self._flush_lock:
            success = True
            try:
                self.flush(batch)
            except Exception as e:
                success = False
                handle_error(e, logger, {"stage": "flush", "batch_size": len(batch)}, reraise=False)
            self.stats.record_flush(len(batch), success)

        logger.debug(f"Flushed batch of {len(batch)} items")

    @property
    def closed(self) -> bool:
        return self._closed

    def get_stats(self) -> Dict[str, Any]:
        """
        Get queue statistics.

        Returns:
            Dictionary with queue statistics
        """
        with self._lock:
            buffered = len(self._buffer)
        return {
            "batch_size": self.batch_size,
            "interval": self.interval,
            "buffered": buffered,
            "pending_batches": self._ready.qsize(),
            "batches_flushed": self.stats.batches_flushed,
            "items_flushed": self.stats.items_flushed,
            "flush_failures": self.stats.flush_failures,
            "last_batch_size": self.stats.last_batch_size,
            "last_flush_at": self.stats.last_flush_at,
            "closed": self._closed,
        }

    def __enter__(self) -> "BatchingQueue[T]":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
