"""Cron-style job scheduler.

Jobs are the only thing that drives agents: their run loops and the
orchestrator's maintenance sweeps are all registered here and fired on their
cron schedules. Nothing in the orchestration core runs on its own.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeAlias

import structlog
from croniter import croniter

from litestar_agents.exceptions import InvalidScheduleError, JobNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from litestar_agents.tasks.monitoring import JobExecutionLog

__all__ = ["JobHandler", "JobScheduler", "ScheduledJob"]

logger = structlog.get_logger(__name__)

JobHandler: TypeAlias = Callable[[], "Awaitable[Any] | Any"]
"""Zero-argument job callback; may be a coroutine function."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScheduledJob:
    """A registered job and its last outcome.

    Attributes:
        name: Unique job name, e.g. ``orchestrator:process_tasks``.
        owner: Agent or component that registered the job.
        schedule: Cron expression.
        handler: Callback invoked on every firing.
        enabled: Whether the job fires while the scheduler runs.
        running: Whether an invocation is in flight.
        last_run_at: Start time of the latest invocation.
        last_error: Error message of the latest invocation, if it failed.
    """

    name: str
    owner: str
    schedule: str
    handler: JobHandler
    enabled: bool = True
    running: bool = False
    last_run_at: datetime | None = None
    last_error: str | None = None


@dataclass
class _JobLoop:
    task: asyncio.Task[None]
    stop: asyncio.Event


class JobScheduler:
    """Runs registered jobs on their cron schedules.

    Each enabled job gets its own asyncio loop that sleeps until the next
    firing and then awaits the handler, so one job never overlaps itself and a
    slow job never delays another. Firings missed while a handler runs are
    skipped. With a ``job_log`` every invocation is also recorded in the shared
    store.

    Example:
        >>> scheduler = JobScheduler()
        >>> scheduler.register_job("orchestrator", "orchestrator:process_tasks", "*/5 * * * *", agent.run)
        >>> scheduler.start()
        >>> await scheduler.stop()
    """

    def __init__(self, job_log: JobExecutionLog | None = None) -> None:
        self.job_log = job_log
        self._jobs: dict[str, ScheduledJob] = {}
        self._loops: dict[str, _JobLoop] = {}
        self._retiring: set[asyncio.Task[None]] = set()
        self.is_running = False

    def register_job(
        self,
        owner: str,
        name: str,
        schedule: str,
        handler: JobHandler,
        *,
        enabled: bool = True,
    ) -> ScheduledJob:
        """Register a job, replacing any job with the same name.

        Args:
            owner: Agent or component registering the job.
            name: Unique job name.
            schedule: Cron expression.
            handler: Zero-argument callback, sync or async.
            enabled: Whether the job fires.

        Returns:
            The registered job.

        Raises:
            InvalidScheduleError: If ``schedule`` is not a valid cron expression.
        """
        if not croniter.is_valid(schedule):
            raise InvalidScheduleError(name, schedule)

        job = ScheduledJob(name=name, owner=owner, schedule=schedule, handler=handler, enabled=enabled)
        self._jobs[name] = job
        logger.info("job_registered", job=name, owner=owner, schedule=schedule, enabled=enabled)

        if self.is_running:
            self._stop_loop(name)
            if enabled:
                self._start_loop(job)
        return job

    def start(self) -> None:
        """Start a loop for every enabled job. Must be called inside a running event loop."""
        if self.is_running:
            logger.warning("scheduler_already_running")
            return

        self.is_running = True
        for job in self._jobs.values():
            if job.enabled:
                self._start_loop(job)
            else:
                logger.info("job_skipped_disabled", job=job.name)
        logger.info("scheduler_started", jobs=len(self._loops))

    async def stop(self) -> None:
        """Stop firing jobs and wait for in-flight invocations to finish."""
        if not self.is_running:
            logger.warning("scheduler_not_running")
            return

        self.is_running = False
        loops = list(self._loops.values())
        for loop in loops:
            loop.stop.set()
        await asyncio.gather(*(loop.task for loop in loops), *self._retiring, return_exceptions=True)
        self._loops.clear()
        logger.info("scheduler_stopped")

    async def run_job_now(self, name: str) -> None:
        """Invoke a job immediately, outside its schedule.

        Raises:
            JobNotFoundError: If no job has this name.
        """
        await self._execute(self._get(name))

    def enable_job(self, name: str) -> None:
        job = self._get(name)
        job.enabled = True
        if self.is_running and name not in self._loops:
            self._start_loop(job)

    def disable_job(self, name: str) -> None:
        """Stop future firings of a job. An in-flight invocation still finishes."""
        self._get(name).enabled = False
        self._stop_loop(name)

    def get_job(self, name: str) -> ScheduledJob:
        return self._get(name)

    def get_status(self) -> list[dict[str, Any]]:
        """Summaries of every registered job, for monitoring."""
        return [
            {
                "name": job.name,
                "owner": job.owner,
                "schedule": job.schedule,
                "enabled": job.enabled,
                "running": job.running,
                "last_run_at": job.last_run_at,
                "last_error": job.last_error,
            }
            for job in self._jobs.values()
        ]

    def _get(self, name: str) -> ScheduledJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise JobNotFoundError(name) from None

    def _start_loop(self, job: ScheduledJob) -> None:
        stop = asyncio.Event()
        task = asyncio.get_running_loop().create_task(self._run_loop(job, stop), name=f"job:{job.name}")
        self._loops[job.name] = _JobLoop(task=task, stop=stop)

    def _stop_loop(self, name: str) -> None:
        loop = self._loops.pop(name, None)
        if loop is not None:
            loop.stop.set()
            self._retiring.add(loop.task)
            loop.task.add_done_callback(self._retiring.discard)

    async def _run_loop(self, job: ScheduledJob, stop: asyncio.Event) -> None:
        while not stop.is_set():
            now = _now()
            next_fire = croniter(job.schedule, now).get_next(datetime)
            try:
                await asyncio.wait_for(stop.wait(), timeout=max((next_fire - now).total_seconds(), 0))
            except asyncio.TimeoutError:
                await self._execute(job)

    async def _execute(self, job: ScheduledJob) -> None:
        log = logger.bind(job=job.name, owner=job.owner)
        job.running = True
        job.last_run_at = _now()
        log.info("job_started")
        entry_id = await self._log_started(job)
        try:
            result = job.handler()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            job.last_error = str(exc)
            log.exception("job_failed")
        else:
            job.last_error = None
            log.info("job_completed")
        finally:
            job.running = False
        await self._log_finished(job, entry_id)

    async def _log_started(self, job: ScheduledJob) -> UUID | None:
        if self.job_log is None:
            return None
        try:
            return await self.job_log.record_started(job.name, job.owner, job.last_run_at)
        except Exception:
            logger.exception("job_log_write_failed", job=job.name)
            return None

    async def _log_finished(self, job: ScheduledJob, entry_id: UUID | None) -> None:
        # A lost history row never fails the job itself.
        if self.job_log is None or entry_id is None:
            return
        try:
            await self.job_log.record_finished(entry_id, job.last_error)
        except Exception:
            logger.exception("job_log_write_failed", job=job.name)
