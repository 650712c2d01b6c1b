"""Periodic session jobs.

Rollover checks and external-sync polls are driven by an APScheduler
``AsyncIOScheduler``.  Each trigger turns into a :class:`SessionCommand`
handed to a submit callable (normally ``TrackingSession.submit``); the
scheduler never touches the session directly.

``apscheduler`` is only imported by :meth:`TrackingScheduler.start`.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from .commands import CommandKind, SessionCommand

SubmitFn = Callable[[SessionCommand], Awaitable[None]]

_INTERVAL_UNITS = ("hours", "minutes", "seconds")
MIDNIGHT = {"hour": 0, "minute": 0, "second": 5}


@dataclass
class TrackingJob:
    """One trigger. ``interval`` holds IntervalTrigger kwargs, ``cron`` CronTrigger kwargs; set one."""

    id: str
    kind: CommandKind
    interval: dict[str, Any] = field(default_factory=dict)
    cron: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        schedule = self.cron or self.interval
        return f"{self.id} ({self.kind.value}, {'cron' if self.cron else 'every'} {schedule})"


class TrackingScheduler:
    """Turns timer triggers into session commands.

    Args:
        submit_fn: Receives each fired command.
        timezone: Zone that cron triggers (the midnight check) are evaluated in.
    """

    def __init__(self, submit_fn: SubmitFn, timezone: str = "UTC"):
        self._submit = submit_fn
        self._tz = timezone
        self._jobs: list[TrackingJob] = []
        self._apscheduler: Any = None

    @property
    def jobs(self) -> list[TrackingJob]:
        return list(self._jobs)

    @property
    def timezone(self) -> str:
        return self._tz

    @property
    def running(self) -> bool:
        return self._apscheduler is not None

    def add_job(self, job: TrackingJob) -> None:
        if bool(job.interval) == bool(job.cron):
            raise ValueError(f"Job {job.id} needs exactly one of interval or cron")
        self._jobs.append(job)

    def add_jobs_from_config(self, config: Any) -> None:
        """Register the jobs described by the ``scheduler`` config section.

        Keys read: ``enabled``, ``timezone``, ``rollover_check`` (interval
        kwargs), ``midnight_rollover`` and ``external_sync`` (``enabled``
        plus interval kwargs).  Nothing is registered when disabled.
        """
        section = config.get("scheduler") or {}
        if not section.get("enabled", False):
            logger.info("Scheduler disabled by configuration")
            return
        self._tz = section.get("timezone") or self._tz

        if section.get("rollover_check"):
            self.add_job(
                TrackingJob(
                    id="rollover_check",
                    kind=CommandKind.ROLLOVER_CHECK,
                    interval=dict(section["rollover_check"]),
                )
            )
        if section.get("midnight_rollover", True):
            self.add_job(TrackingJob(id="midnight_rollover", kind=CommandKind.ROLLOVER_CHECK, cron=dict(MIDNIGHT)))

        sync = section.get("external_sync") or {}
        if sync.get("enabled", False):
            every = {unit: sync[unit] for unit in _INTERVAL_UNITS if unit in sync}
            self.add_job(
                TrackingJob(
                    id="external_sync",
                    kind=CommandKind.EXTERNAL_SYNC,
                    interval=every or {"seconds": 10},
                    metadata={"source": sync.get("source")},
                )
            )

    def start(self) -> None:
        """Schedule every registered job. Call with an event loop running."""
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.cron import CronTrigger
        from apscheduler.triggers.interval import IntervalTrigger

        scheduler = AsyncIOScheduler(timezone=self._tz)
        for job in self._jobs:
            if job.cron:
                trigger = CronTrigger(timezone=self._tz, **job.cron)
            else:
                trigger = IntervalTrigger(timezone=self._tz, **job.interval)
            scheduler.add_job(self._fire, trigger=trigger, id=job.id, args=[job], replace_existing=True)
            logger.info(f"Scheduled {job.describe()}")
        scheduler.start()
        self._apscheduler = scheduler
        logger.info(f"Tracking scheduler running {len(self._jobs)} job(s) in {self._tz}")

    def shutdown(self) -> None:
        if self._apscheduler is None:
            return
        self._apscheduler.shutdown(wait=False)
        self._apscheduler = None
        logger.info("Tracking scheduler stopped")

    async def _fire(self, job: TrackingJob) -> None:
        command = SessionCommand(kind=job.kind, job_id=job.id, metadata=dict(job.metadata))
        logger.debug(f"Job {job.id} fired, submitting command {command.id}")
        await self._submit(command)
