"""
Concurrency building blocks for crawl pipelines.

Main Components:
- WorkerPool: fixed number of worker threads over a bounded intake queue
- BatchingQueue: many-producer buffer flushed to a sink on size or time
"""

from .models import BatchStats, WorkerState, WorkerStatus
from .thread_safe import PendingTracker, ThreadSafeCounter
from .worker_pool import WorkerPool, WorkerThread
from .batch_queue import BatchingQueue

__all__ = [
    # Models
    'BatchStats',
    'WorkerState',
    'WorkerStatus',

    # Thread-safe utilities
    'PendingTracker',
    'ThreadSafeCounter',

    # Main components
    'BatchingQueue',
    'WorkerPool',
    'WorkerThread',
]
