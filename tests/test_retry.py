"""Tests for the retry policy."""

from __future__ import annotations

from datetime import timedelta

import pytest

from litestar_agents.tasks.retry import RetryPolicy


@pytest.mark.unit
class TestRetryPolicy:
    """Tests for RetryPolicy backoff computation."""

    def test_defaults(self) -> None:
        policy = RetryPolicy()

        assert policy.max_attempts == 3
        assert policy.base_delay == timedelta(seconds=30)

    def test_exponential_delay(self) -> None:
        policy = RetryPolicy(max_attempts=5, jitter=0)

        assert policy.next_delay(1) == timedelta(seconds=30)
        assert policy.next_delay(2) == timedelta(seconds=60)
        assert policy.next_delay(3) == timedelta(seconds=120)

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy(max_attempts=20, jitter=0, max_delay=timedelta(minutes=5))

        assert policy.next_delay(10) == timedelta(minutes=5)

    def test_budget_exhausted(self) -> None:
        policy = RetryPolicy(max_attempts=3, jitter=0)

        assert policy.should_retry(2) is True
        assert policy.should_retry(3) is False
        assert policy.next_delay(3) is None

    def test_task_budget_overrides_policy(self) -> None:
        policy = RetryPolicy(max_attempts=3, jitter=0)

        assert policy.next_delay(3, max_attempts=5) == timedelta(seconds=120)
        assert policy.next_delay(1, max_attempts=1) is None

    def test_no_delay_before_first_failure(self) -> None:
        assert RetryPolicy().next_delay(0) is None

    def test_jitter_bounds(self) -> None:
        policy = RetryPolicy(max_attempts=5, jitter=0.5)

        for _ in range(20):
            delay = policy.next_delay(2)
            assert delay is not None
            assert timedelta(seconds=60) <= delay <= timedelta(seconds=90)
