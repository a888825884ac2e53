"""
Counting barrier used to line up concurrent writers.

A latch starts at a count; ``count_down`` decrements it and ``await_`` blocks
until it reaches zero. A latch of one releases every waiting thread at once
(the start signal); a latch of N lets the caller wait for N workers to finish.
"""
import threading
from typing import Optional


class CountDownLatch:
    """One-shot counting barrier built on threading.Condition."""

    def __init__(self, count: int = 1) -> None:
        if count < 0:
            raise ValueError(f"Latch count cannot be negative, got {count}")
        self._count = count
        self._condition = threading.Condition()

    @property
    def count(self) -> int:
        with self._condition:
            return self._count

    def count_down(self) -> None:
        """Decrement the count, releasing all waiters when it reaches zero."""
        with self._condition:
            if self._count == 0:
                return
            self._count -= 1
            if self._count == 0:
                self._condition.notify_all()

    def await_(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the count reaches zero.

        Args:
            timeout: Seconds to wait, or None to wait forever

        Returns:
            True if the count reached zero, False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout=timeout)

    def __repr__(self) -> str:
        return f"CountDownLatch(count={self.count})"
