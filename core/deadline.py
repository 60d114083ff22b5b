# ============================================================================
# DEADLINES
# ============================================================================
# STATUS: Core - Cancellation for database calls
# PURPOSE: Carry a time budget into every statement the engine executes
# CREATED: 19 OCT 2026
# ============================================================================
"""
Deadlines

A Deadline is passed down to every database call. It is checked before each
statement; once expired the caller raises OperationCancelled and the open
transaction is rolled back by its context manager.

Usage:
    deadline = Deadline.after(30)
    deadline.check("apply migration 1700000000")
"""

import threading
import time
from typing import Optional

from core.errors import OperationCancelled


class Deadline:
    """Absolute point in time after which work must stop."""

    def __init__(self, expires_at: Optional[float] = None):
        # None = never expires
        self.expires_at = expires_at
        self._cancelled = threading.Event()

    @classmethod
    def after(cls, seconds: Optional[float]) -> "Deadline":
        """Deadline ``seconds`` from now; ``None`` or 0 means no limit."""
        if not seconds:
            return cls()
        return cls(time.monotonic() + seconds)

    @classmethod
    def none(cls) -> "Deadline":
        return cls()

    def cancel(self) -> None:
        """Cancel explicitly, e.g. from a signal handler."""
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when unbounded."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def expired(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self, operation: str = "operation") -> None:
        """
        Raise OperationCancelled if the deadline has passed.

        Raises:
            OperationCancelled: When cancelled or expired
        """
        if self.expired():
            raise OperationCancelled(f"{operation} cancelled: deadline exceeded", operation=operation)

    def statement_timeout_ms(self) -> Optional[int]:
        """Remaining time as a Postgres statement_timeout value."""
        remaining = self.remaining()
        if remaining is None:
            return None
        return max(1, int(remaining * 1000))


def ensure_deadline(deadline: Optional[Deadline]) -> Deadline:
    return deadline if deadline is not None else Deadline()


__all__ = ["Deadline", "ensure_deadline"]
