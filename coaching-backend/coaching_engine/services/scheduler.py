"""
APScheduler Configuration

Periodic upkeep jobs: completing sessions whose end time has passed and
expiring enrollment packages.
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from coaching_engine.config import get_settings
from coaching_engine.services.enrollment_service import EnrollmentService
from coaching_engine.services.session_lifecycle import SessionLifecycle

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def complete_elapsed_sessions():
    """
    Periodic job to mark SCHEDULED sessions whose end time has passed as COMPLETED.
    """
    try:
        completed = await SessionLifecycle().complete_elapsed_sessions()
        logger.info(f"Session completion sweep finished: {completed} sessions completed")
    except Exception as e:
        logger.error(f"Failed to complete elapsed sessions: {e}", exc_info=True)


async def expire_packages():
    """
    Hourly job to expire enrollments whose package window has closed.
    """
    try:
        expired = await EnrollmentService().expire_packages()
        logger.info(f"Package expiry sweep finished: {expired} enrollments expired")
    except Exception as e:
        logger.error(f"Failed to expire enrollment packages: {e}", exc_info=True)


def configure_scheduler(target: AsyncIOScheduler) -> AsyncIOScheduler:
    """
    Configure APScheduler with all scheduled jobs.

    Jobs:
        - Session completion: every SESSION_COMPLETION_INTERVAL_MINUTES
        - Package expiry: every hour at :05
    """
    settings = get_settings()

    target.add_job(
        complete_elapsed_sessions,
        trigger=IntervalTrigger(minutes=settings.session_completion_interval_minutes),
        id='session_completion',
        name='Complete Elapsed Sessions',
        replace_existing=True,
        coalesce=True,  # Combine missed runs into single execution
        max_instances=1  # Only one instance at a time
    )

    target.add_job(
        expire_packages,
        trigger=CronTrigger(hour='*', minute=5),
        id='package_expiry',
        name='Expire Enrollment Packages',
        replace_existing=True,
        coalesce=True,
        max_instances=1
    )

    logger.info("Scheduler configured with session completion and package expiry jobs")
    return target


def start_scheduler():
    """Start the APScheduler"""
    global scheduler
    scheduler = configure_scheduler(AsyncIOScheduler())
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    """Stop the APScheduler"""
    global scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
    scheduler = None
