# hn_digest/scheduler.py
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
import pytz

from .config import TIMEZONE, parse_digest_time
from .logging_setup import get_logger

logger = get_logger("hn_digest.scheduler")
scheduler = BackgroundScheduler()

JOB_ID = "daily_digest"

_job_func: Optional[Callable[[], object]] = None
_timezone: str = TIMEZONE


def _job_listener(event):
    if event.exception:
        # APScheduler already captures traceback; this logs it via our logger too.
        logger.error(
            "JOB_ERROR",
            exc_info=event.exception,
            extra={"handled": False, "job_id": event.job_id, "run_time": str(event.scheduled_run_time)},
        )
    else:
        result = event.retval
        logger.info(
            "JOB_OK",
            extra={
                "job_id": event.job_id,
                "run_time": str(event.scheduled_run_time),
                "status": getattr(result, "status", None),
                "delivered": len(getattr(result, "delivered", []) or []),
            },
        )


def build_trigger(digest_time: str, timezone: str = TIMEZONE) -> CronTrigger:
    hour, minute = parse_digest_time(digest_time)
    return CronTrigger(hour=hour, minute=minute, timezone=pytz.timezone(timezone))


def add_jobs(job: Callable[[], object], digest_time: str, timezone: str = TIMEZONE):
    global _job_func, _timezone
    _job_func = job
    _timezone = timezone
    # max_instances=1 + coalesce: a late or overlapping fire never stacks runs
    scheduler.add_job(
        job,
        build_trigger(digest_time, timezone),
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
    logger.info(f"Job registered: {JOB_ID} at {digest_time} {timezone}")


def reschedule(digest_time: str) -> None:
    """Move the daily job to a new HH:MM (raises ConfigError on a bad time)."""
    trigger = build_trigger(digest_time, _timezone)
    if scheduler.get_job(JOB_ID) is None:
        if _job_func is None:
            logger.warning("RESCHEDULE_SKIPPED", extra={"reason": "no_job_registered", "digest_time": digest_time})
            return
        scheduler.add_job(_job_func, trigger, id=JOB_ID, replace_existing=True, max_instances=1, coalesce=True)
    else:
        scheduler.reschedule_job(JOB_ID, trigger=trigger)
    logger.info(f"Job rescheduled: {JOB_ID} at {digest_time} {_timezone}")


def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        logger.info("APScheduler started")


def shutdown_scheduler(wait: bool = False):
    if scheduler.running:
        scheduler.shutdown(wait=wait)
        logger.info("APScheduler stopped")
