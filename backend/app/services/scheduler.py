"""
Scheduled Job Configuration

Configures the daily background jobs using APScheduler:
- Review reminders daily at 00:05 (materializes reminders for cards due today)
- Calendar eviction daily at 02:00 (deletes stale unfinished events)

Both run in APP_TIMEZONE, so "today" matches the learner-facing calendar day.

Execution Context:
    The scheduler runs IN-PROCESS with FastAPI. It is started/stopped via
    FastAPI's lifespan context manager in app/main.py.

    Flow:
        uvicorn starts FastAPI -> lifespan() calls start_scheduler()
        -> APScheduler runs in the event loop

Why APScheduler (AsyncIOScheduler)?
    - Shares FastAPI's asyncio event loop (no thread overhead)
    - Cron-like syntax for scheduling
    - Lightweight for a single-instance deployment

Limitations:
    - Single instance only: with multiple backend replicas each replica runs
      its own scheduler. Both jobs are idempotent (deterministic reminder
      keys, eviction is a pure function of event state), so duplicate
      triggers waste work but do not corrupt data.

Usage:
    # Automatic (via FastAPI lifespan in main.py):
    start_scheduler()  # On app startup
    stop_scheduler()   # On app shutdown

    # Manual trigger:
    from app.services.scheduler import trigger_job_now
    trigger_job_now("calendar_eviction")
"""

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config.settings import settings

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.APP_TIMEZONE))


async def run_review_reminders() -> None:
    """Materialize today's review reminders for every learner."""
    # Deferred imports: avoid loading DB and service modules until job execution.
    from app.db.base import async_session_maker
    from app.services.clock import local_today
    from app.services.learning.review_scheduler import ReviewReminderScheduler

    today = local_today()
    async with async_session_maker() as db:
        scheduled = await ReviewReminderScheduler(db).schedule_all_learners(today)
    logger.info(
        f"Review reminders for {today}: {sum(scheduled.values())} across "
        f"{len(scheduled)} learners"
    )


async def run_calendar_eviction() -> None:
    """Run the nightly calendar eviction pass."""
    from app.services.calendar.eviction import EvictionEngine
    from app.services.clock import local_today

    report = await EvictionEngine().run(today=local_today())
    if report.errors:
        logger.warning(
            f"Calendar eviction finished with {len(report.errors)} learner errors"
        )


def setup_scheduled_jobs() -> None:
    """Configure all scheduled jobs."""

    # Review reminders - daily shortly after local midnight
    scheduler.add_job(
        run_review_reminders,
        CronTrigger(hour=settings.REMINDER_HOUR, minute=settings.REMINDER_MINUTE),
        id="review_reminders",
        name="Review Reminders",
        replace_existing=True,
        misfire_grace_time=3600,  # Allow 1 hour grace period
    )

    # Calendar eviction - daily at EVICTION_HOUR local time
    scheduler.add_job(
        run_calendar_eviction,
        CronTrigger(hour=settings.EVICTION_HOUR, minute=0),
        id="calendar_eviction",
        name="Calendar Eviction",
        replace_existing=True,
        misfire_grace_time=3600,
    )

    logger.info("Scheduled jobs configured:")
    logger.info(
        f"  - Review reminders: daily at "
        f"{settings.REMINDER_HOUR:02d}:{settings.REMINDER_MINUTE:02d} {settings.APP_TIMEZONE}"
    )
    logger.info(
        f"  - Calendar eviction: daily at {settings.EVICTION_HOUR:02d}:00 "
        f"{settings.APP_TIMEZONE}"
    )


def start_scheduler() -> None:
    """Start the scheduler and configure jobs."""
    if scheduler.running:
        logger.warning("Scheduler already running")
        return

    setup_scheduled_jobs()
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Stop the scheduler gracefully."""
    if not scheduler.running:
        logger.warning("Scheduler not running")
        return

    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")


def get_scheduled_jobs() -> list[dict]:
    """Get list of scheduled jobs with their next run times."""
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run": (
                    job.next_run_time.isoformat() if job.next_run_time else None
                ),
                "trigger": str(job.trigger),
            }
        )
    return jobs


def trigger_job_now(job_id: str) -> bool:
    """
    Manually trigger a scheduled job immediately.

    Args:
        job_id: ID of the job to trigger

    Returns:
        True if triggered successfully
    """
    job = scheduler.get_job(job_id)
    if job:
        job.modify(next_run_time=datetime.now(ZoneInfo(settings.APP_TIMEZONE)))
        logger.info(f"Manually triggered job: {job_id}")
        return True

    logger.warning(f"Job not found: {job_id}")
    return False
