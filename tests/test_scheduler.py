"""Tests for the daily refresh scheduler."""

import pytest

from job_watch import scheduler
from job_watch.config import ScheduleConfig
from job_watch.errors import RefreshInProgressError


class FakeEngine:
    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    def refresh_all(self):
        self.calls += 1
        if self.error:
            raise self.error
        return []


@pytest.fixture(autouse=True)
def reset_scheduler():
    yield
    scheduler.shutdown_scheduler()


class TestTrigger:
    def test_hour_and_minute(self):
        trigger = scheduler.build_trigger(ScheduleConfig(hour=7, minute=30))
        assert str(trigger) == "cron[hour='7', minute='30']"

    def test_timezone(self):
        trigger = scheduler.build_trigger(ScheduleConfig(timezone="Europe/Berlin"))
        assert str(trigger.timezone) == "Europe/Berlin"


class TestScheduledRefresh:
    def test_runs_full_refresh(self):
        engine = FakeEngine()
        scheduler.run_scheduled_refresh(engine)
        assert engine.calls == 1

    def test_in_flight_refresh_skipped(self):
        engine = FakeEngine(RefreshInProgressError("busy"))
        scheduler.run_scheduled_refresh(engine)
        assert engine.calls == 1

    def test_unexpected_errors_propagate(self):
        with pytest.raises(RuntimeError):
            scheduler.run_scheduled_refresh(FakeEngine(RuntimeError("boom")))


class TestSchedulerLifecycle:
    def test_info_when_not_started(self):
        assert scheduler.get_scheduler_info() == {"running": False, "jobs": []}
        assert scheduler.get_next_run_time() is None

    def test_background_scheduler_registers_job(self):
        sched = scheduler.init_scheduler(FakeEngine(), ScheduleConfig(hour=6))
        assert sched.running
        assert scheduler.init_scheduler(FakeEngine(), ScheduleConfig()) is sched

        info = scheduler.get_scheduler_info()
        assert info["running"] is True
        assert [job["id"] for job in info["jobs"]] == [scheduler.REFRESH_JOB_ID]
        assert scheduler.get_next_run_time() is not None

    def test_blocking_scheduler_returned_unstarted(self):
        sched = scheduler.init_scheduler(FakeEngine(), ScheduleConfig(), blocking=True)
        assert not sched.running
        assert scheduler.get_next_run_time() is None
