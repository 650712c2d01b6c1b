"""Tests for TrackingScheduler."""

import pytest

from bolta.core.config import Config
from bolta.tracking.commands import CommandKind, SessionCommand
from bolta.tracking.scheduler import TrackingJob, TrackingScheduler


class _Collector:
    def __init__(self):
        self.commands: list[SessionCommand] = []

    async def __call__(self, command: SessionCommand) -> None:
        self.commands.append(command)


def test_jobs_from_default_config(tmp_dir):
    scheduler = TrackingScheduler(_Collector())
    scheduler.add_jobs_from_config(Config(data_dir=tmp_dir))
    ids = {job.id: job for job in scheduler.jobs}
    assert set(ids) == {"rollover_check", "midnight_rollover"}
    assert ids["rollover_check"].interval == {"hours": 1}
    assert ids["midnight_rollover"].cron["hour"] == 0


def test_external_sync_job(tmp_dir):
    config = Config(data_dir=tmp_dir)
    config.set("scheduler.external_sync", {"enabled": True, "seconds": 30, "source": "apple_health_export"})
    config.set("scheduler.midnight_rollover", False)
    scheduler = TrackingScheduler(_Collector())
    scheduler.add_jobs_from_config(config)
    sync = [j for j in scheduler.jobs if j.kind == CommandKind.EXTERNAL_SYNC]
    assert len(sync) == 1
    assert sync[0].interval == {"seconds": 30}
    assert sync[0].metadata["source"] == "apple_health_export"


def test_disabled_scheduler_adds_nothing(tmp_dir):
    config = Config(data_dir=tmp_dir)
    config.set("scheduler.enabled", False)
    scheduler = TrackingScheduler(_Collector())
    scheduler.add_jobs_from_config(config)
    assert scheduler.jobs == []


def test_job_needs_exactly_one_trigger():
    scheduler = TrackingScheduler(_Collector())
    with pytest.raises(ValueError):
        scheduler.add_job(TrackingJob(id="x", kind=CommandKind.FLUSH))
    with pytest.raises(ValueError):
        scheduler.add_job(TrackingJob(id="x", kind=CommandKind.FLUSH, interval={"seconds": 1}, cron={"hour": 1}))


async def test_fired_job_submits_command():
    collector = _Collector()
    scheduler = TrackingScheduler(collector)
    job = TrackingJob(id="rollover_check", kind=CommandKind.ROLLOVER_CHECK, interval={"hours": 1})
    await scheduler._fire(job)
    assert len(collector.commands) == 1
    assert collector.commands[0].kind == CommandKind.ROLLOVER_CHECK
    assert collector.commands[0].job_id == "rollover_check"


async def test_start_registers_jobs_and_shutdown():
    scheduler = TrackingScheduler(_Collector(), timezone="UTC")
    scheduler.add_job(TrackingJob(id="flush", kind=CommandKind.FLUSH, interval={"seconds": 30}))
    scheduler.add_job(TrackingJob(id="midnight", kind=CommandKind.ROLLOVER_CHECK, cron={"hour": 0, "minute": 0}))
    scheduler.start()
    try:
        assert scheduler.running
        assert {j.id for j in scheduler._apscheduler.get_jobs()} == {"flush", "midnight"}
    finally:
        scheduler.shutdown()
    assert not scheduler.running


def test_timezone_from_config(tmp_dir):
    config = Config(data_dir=tmp_dir)
    config.set("scheduler.timezone", "Europe/Berlin")
    scheduler = TrackingScheduler(_Collector())
    scheduler.add_jobs_from_config(config)
    assert scheduler.timezone == "Europe/Berlin"
