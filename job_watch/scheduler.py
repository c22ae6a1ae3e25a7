"""APScheduler setup: runs the full refresh once a day."""

import logging
import traceback

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from job_watch.config import ScheduleConfig
from job_watch.errors import RefreshInProgressError
from job_watch.pipeline import RefreshEngine

logger = logging.getLogger("job_watch.scheduler")

REFRESH_JOB_ID = "refresh_all_sources"

_scheduler: BaseScheduler | None = None


def _job_listener(event):
    """Log scheduler job events for debugging."""
    if event.exception:
        logger.error("Scheduled job %s FAILED: %s", event.job_id, event.exception)
        logger.error("Traceback: %s", event.traceback)
    elif hasattr(event, "job_id"):
        if event.code == EVENT_JOB_MISSED:
            logger.warning("Scheduled job %s MISSED its fire time", event.job_id)
        else:
            logger.info("Scheduled job %s executed successfully", event.job_id)


def build_trigger(schedule: ScheduleConfig) -> CronTrigger:
    kwargs: dict = {"hour": schedule.hour, "minute": schedule.minute}
    if schedule.timezone:
        kwargs["timezone"] = schedule.timezone
    return CronTrigger(**kwargs)


def run_scheduled_refresh(engine: RefreshEngine) -> None:
    """Scheduled entry point; an in-flight refresh means this run is skipped."""
    logger.info("=== SCHEDULER FIRING refresh of all sources ===")
    try:
        outcomes = engine.refresh_all()
    except RefreshInProgressError:
        logger.warning("Refresh already in progress; skipping scheduled run")
        return
    except Exception:
        logger.error("=== SCHEDULER FAILED refresh ===\n%s", traceback.format_exc())
        raise
    logger.info("=== SCHEDULER COMPLETED refresh of %d sources ===", len(outcomes))


def init_scheduler(engine: RefreshEngine, schedule: ScheduleConfig, blocking: bool = False) -> BaseScheduler:
    """Create the scheduler with the daily refresh job registered.

    A background scheduler is started right away; a blocking one is
    returned unstarted so the caller can start it in the foreground.
    """
    global _scheduler
    if _scheduler is not None:
        return _scheduler

    scheduler = BlockingScheduler() if blocking else BackgroundScheduler()
    scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    trigger = build_trigger(schedule)
    scheduler.add_job(
        run_scheduled_refresh,
        trigger=trigger,
        args=[engine],
        id=REFRESH_JOB_ID,
        name="Refresh all sources",
        misfire_grace_time=3600,
        coalesce=True,
        max_instances=1,
        replace_existing=True,
    )
    logger.info("Scheduled daily refresh at %s", trigger)

    _scheduler = scheduler
    if not blocking:
        scheduler.start()
        logger.info("APScheduler started")
    return scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        if _scheduler.running:
            _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("APScheduler stopped")


def get_next_run_time():
    """Return the next scheduled refresh time, or None."""
    if _scheduler is None:
        return None
    job = _scheduler.get_job(REFRESH_JOB_ID)
    if job:
        return getattr(job, "next_run_time", None)
    return None


def get_scheduler_info() -> dict:
    """Return diagnostic info about the scheduler state."""
    if _scheduler is None:
        return {"running": False, "jobs": []}
    jobs = []
    for job in _scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": str(next_run) if next_run else None,
            "trigger": str(job.trigger),
        })
    return {
        "running": _scheduler.running,
        "jobs": jobs,
    }
