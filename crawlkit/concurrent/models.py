"""
Data models for the worker pool and batching queue.
"""

from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime
from enum import Enum


class WorkerState(Enum):
    """Worker thread state."""
    STARTING = "starting"
    IDLE = "idle"
    WORKING = "working"
    STOPPED = "stopped"


@dataclass
class WorkerStatus:
    """Status information for a worker thread."""
    worker_id: str
    state: WorkerState = WorkerState.STARTING
    tasks_completed: int = 0
    tasks_failed: int = 0
    last_activity: datetime = field(default_factory=datetime.now)
    error_message: Optional[str] = None
    total_execution_time: float = 0.0

    def update_activity(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = datetime.now()

    def start_task(self) -> None:
        """Mark worker as working on an item."""
        self.state = WorkerState.WORKING
        self.update_activity()

    def complete_task(self, execution_time: float = 0.0) -> None:
        """Mark the current item as handled successfully."""
        self.state = WorkerState.IDLE
        self.tasks_completed += 1
        self.total_execution_time += execution_time
        self.update_activity()

    def fail_task(self, error_message: str, execution_time: float = 0.0) -> None:
        """Mark the current item as failed."""
        self.state = WorkerState.IDLE
        self.tasks_failed += 1
        self.total_execution_time += execution_time
        self.error_message = error_message
        self.update_activity()

    def get_average_task_time(self) -> float:
        """Get average item execution time."""
        handled = self.tasks_completed + self.tasks_failed
        if handled > 0:
            return self.total_execution_time / handled
        return 0.0


@dataclass
class BatchStats:
    """Delivery statistics for a batching queue."""
    batches_flushed: int = 0
    items_flushed: int = 0
    flush_failures: int = 0
    last_flush_at: Optional[datetime] = None
    last_batch_size: int = 0

    def record_flush(self, size: int, success: bool) -> None:
        self.batches_flushed += 1
        self.items_flushed += size
        self.last_batch_size = size
        self.last_flush_at = datetime.now()
        if not success:
            self.flush_failures += 1
