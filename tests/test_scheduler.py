"""Tests for the cron job scheduler."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any

import pytest

from litestar_agents import scheduler as scheduler_module
from litestar_agents.exceptions import InvalidScheduleError, JobNotFoundError
from litestar_agents.scheduler import JobScheduler


class ImmediateCron:
    """Stand-in schedule that fires a few milliseconds after every check."""

    def __init__(self, schedule: str, start: datetime) -> None:
        self.start = start

    @staticmethod
    def is_valid(schedule: str) -> bool:
        return True

    def get_next(self, ret_type: Any) -> datetime:
        return self.start + timedelta(milliseconds=5)


@pytest.fixture
def scheduler() -> JobScheduler:
    return JobScheduler()


@pytest.mark.unit
@pytest.mark.asyncio
class TestRegistration:
    """Tests for job registration and lookup."""

    async def test_register_job(self, scheduler: JobScheduler) -> None:
        job = scheduler.register_job("orchestrator", "orchestrator:process_tasks", "*/5 * * * *", lambda: None)

        assert job.enabled is True
        assert scheduler.get_job("orchestrator:process_tasks") is job

    @pytest.mark.parametrize("schedule", ["not a cron", "61 * * * *", ""])
    async def test_invalid_schedule(self, scheduler: JobScheduler, schedule: str) -> None:
        with pytest.raises(InvalidScheduleError) as exc_info:
            scheduler.register_job("seo", "seo:audit", schedule, lambda: None)

        assert exc_info.value.job_name == "seo:audit"

    async def test_register_replaces(self, scheduler: JobScheduler) -> None:
        scheduler.register_job("seo", "seo:audit", "0 * * * *", lambda: None)
        scheduler.register_job("seo", "seo:audit", "30 * * * *", lambda: None)

        assert scheduler.get_job("seo:audit").schedule == "30 * * * *"
        assert len(scheduler.get_status()) == 1

    async def test_unknown_job(self, scheduler: JobScheduler) -> None:
        with pytest.raises(JobNotFoundError):
            scheduler.get_job("missing")
        with pytest.raises(JobNotFoundError):
            await scheduler.run_job_now("missing")
        with pytest.raises(JobNotFoundError):
            scheduler.disable_job("missing")

    async def test_get_status(self, scheduler: JobScheduler) -> None:
        scheduler.register_job("orchestrator", "orchestrator:check_approvals", "0 9 * * *", lambda: None)
        scheduler.register_job("seo", "seo:audit", "0 * * * *", lambda: None, enabled=False)

        status = {entry["name"]: entry for entry in scheduler.get_status()}

        assert status["orchestrator:check_approvals"]["owner"] == "orchestrator"
        assert status["orchestrator:check_approvals"]["enabled"] is True
        assert status["seo:audit"]["enabled"] is False
        assert status["seo:audit"]["last_run_at"] is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestRunJobNow:
    """Tests for manual job invocation."""

    async def test_sync_and_async_handlers(self, scheduler: JobScheduler) -> None:
        calls: list[str] = []

        async def async_handler() -> None:
            calls.append("async")

        scheduler.register_job("a", "a:sync", "* * * * *", lambda: calls.append("sync"))
        scheduler.register_job("a", "a:async", "* * * * *", async_handler)

        await scheduler.run_job_now("a:sync")
        await scheduler.run_job_now("a:async")

        assert calls == ["sync", "async"]
        job = scheduler.get_job("a:async")
        assert job.last_run_at is not None
        assert job.running is False

    async def test_failure_is_recorded_not_raised(self, scheduler: JobScheduler) -> None:
        outcomes = iter([RuntimeError("database unavailable"), None])

        async def flaky() -> None:
            error = next(outcomes)
            if error is not None:
                raise error

        scheduler.register_job("analytics", "analytics:sync", "* * * * *", flaky)

        await scheduler.run_job_now("analytics:sync")
        assert scheduler.get_job("analytics:sync").last_error == "database unavailable"

        await scheduler.run_job_now("analytics:sync")
        assert scheduler.get_job("analytics:sync").last_error is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestLifecycle:
    """Tests for starting and stopping job loops."""

    async def test_start_and_stop(self, scheduler: JobScheduler) -> None:
        scheduler.register_job("orchestrator", "orchestrator:process_tasks", "*/5 * * * *", lambda: None)

        scheduler.start()
        assert scheduler.is_running is True
        scheduler.start()

        await scheduler.stop()
        assert scheduler.is_running is False
        await scheduler.stop()

    async def test_jobs_fire_on_schedule(self, scheduler: JobScheduler, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(scheduler_module, "croniter", ImmediateCron)
        fired = asyncio.Event()
        scheduler.register_job("content", "content:process_tasks", "* * * * *", fired.set)

        scheduler.start()
        await asyncio.wait_for(fired.wait(), timeout=2)
        await scheduler.stop()

        assert scheduler.get_job("content:process_tasks").last_run_at is not None

    async def test_disabled_job_does_not_fire(self, scheduler: JobScheduler, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(scheduler_module, "croniter", ImmediateCron)
        calls: list[str] = []
        fired = asyncio.Event()
        scheduler.register_job("seo", "seo:audit", "* * * * *", lambda: calls.append("audit"), enabled=False)
        scheduler.register_job("content", "content:process_tasks", "* * * * *", fired.set)

        scheduler.start()
        await asyncio.wait_for(fired.wait(), timeout=2)
        await scheduler.stop()

        assert calls == []

    async def test_disable_and_enable_while_running(
        self,
        scheduler: JobScheduler,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(scheduler_module, "croniter", ImmediateCron)
        fired = asyncio.Event()
        scheduler.register_job("content", "content:process_tasks", "* * * * *", fired.set)

        scheduler.start()
        scheduler.disable_job("content:process_tasks")
        await asyncio.sleep(0.05)
        fired.clear()
        await asyncio.sleep(0.05)
        assert not fired.is_set()

        scheduler.enable_job("content:process_tasks")
        await asyncio.wait_for(fired.wait(), timeout=2)
        await scheduler.stop()

    async def test_stop_waits_for_in_flight_job(
        self,
        scheduler: JobScheduler,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(scheduler_module, "croniter", ImmediateCron)
        started = asyncio.Event()
        finished: list[bool] = []

        async def slow() -> None:
            started.set()
            await asyncio.sleep(0.05)
            finished.append(True)

        scheduler.register_job("analytics", "analytics:sync", "* * * * *", slow)
        scheduler.start()
        await asyncio.wait_for(started.wait(), timeout=2)

        await scheduler.stop()

        assert finished == [True]
