"""Bounded retry with exponential backoff for failed agent tasks."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import timedelta

__all__ = ["RetryPolicy"]


@dataclass(frozen=True)
class RetryPolicy:
    """Decides whether a failed task is re-queued and after what delay.

    The delay for the n-th failure is ``base_delay * multiplier ** (n - 1)``,
    capped at ``max_delay`` and stretched by up to ``jitter`` (a fraction of the
    delay) so that tasks failing together do not all come back together.

    Attributes:
        max_attempts: Default attempt budget for tasks that carry none.
        base_delay: Delay after the first failure.
        multiplier: Growth factor between consecutive delays.
        max_delay: Upper bound on the delay before jitter.
        jitter: Random extra delay, as a fraction of the computed delay.

    Example:
        >>> policy = RetryPolicy(jitter=0)
        >>> policy.next_delay(1)
        datetime.timedelta(seconds=30)
        >>> policy.next_delay(3) is None
        True
    """

    max_attempts: int = 3
    base_delay: timedelta = timedelta(seconds=30)
    multiplier: float = 2.0
    max_delay: timedelta = timedelta(hours=1)
    jitter: float = 0.1

    def should_retry(self, attempts: int, max_attempts: int | None = None) -> bool:
        """Whether a task that has failed ``attempts`` times gets another attempt."""
        budget = max_attempts if max_attempts is not None else self.max_attempts
        return attempts < budget

    def next_delay(self, attempts: int, max_attempts: int | None = None) -> timedelta | None:
        """Compute the backoff before the next attempt.

        Args:
            attempts: Failed attempts so far, including the one just recorded.
            max_attempts: The task's own budget; falls back to the policy's.

        Returns:
            The delay before the task may be pulled again, or None when the
            attempt budget is spent.
        """
        if attempts < 1 or not self.should_retry(attempts, max_attempts):
            return None

        seconds = self.base_delay.total_seconds() * self.multiplier ** (attempts - 1)
        seconds = min(seconds, self.max_delay.total_seconds())
        if self.jitter > 0:
            seconds += random.uniform(0, seconds * self.jitter)  # noqa: S311
        return timedelta(seconds=seconds)
