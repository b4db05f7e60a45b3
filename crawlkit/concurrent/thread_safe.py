"""
Thread-safe primitives shared by the worker pool and the batching queue.
"""

import threading


class ThreadSafeCounter:
    """Thread-safe counter with atomic operations."""

    def __init__(self, initial_value: int = 0):
        """
        Initialize counter with initial value.

        Args:
            initial_value: Starting value for the counter
        """
        self._value = initial_value
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """
        Atomically increment counter and return new value.

        Args:
            amount: Amount to increment by (default: 1)

        Returns:
            New counter value after increment
        """
        with self._lock:
            self._value += amount
            return self._value

    def get_value(self) -> int:
        """Get current counter value."""
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"ThreadSafeCounter(value={self.get_value()})"


class PendingTracker:
    """
    Counter of outstanding work that lets callers block until it drains to zero.

    Backed by a condition variable so ``wait_for_zero`` wakes as soon as the
    last unit completes rather than on the next poll.
    """

    def __init__(self):
        self._pending = 0
        self._condition = threading.Condition()

    def add(self, amount: int = 1) -> int:
        with self._condition:
            self._pending += amount
            return self._pending

    def done(self, amount: int = 1) -> int:
        with self._condition:
            self._pending -= amount
            if self._pending <= 0:
                self._pending = 0
                self._condition.notify_all()
            return self._pending

    def get_value(self) -> int:
        with self._condition:
            return self._pending

    def wake(self) -> None:
        """Wake every waiter so it can re-check external stop conditions."""
        with self._condition:
            self._condition.notify_all()

    def wait_for_zero(self, timeout: float, stop: threading.Event) -> bool:
        """
        Block until the count reaches zero, ``stop`` is set, or ``timeout`` elapses.

        Returns:
            True if the count reached zero
        """
        with self._condition:
            return self._condition.wait_for(
                lambda: self._pending == 0 or stop.is_set(),
                timeout=timeout
            ) and self._pending == 0
