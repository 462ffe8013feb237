"""
APScheduler setup - daily visa and Schengen checks plus housekeeping.

Jobs run in-process on the FastAPI event loop; a memory jobstore is enough
because every job is idempotent and re-registered on startup.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.jobstores.memory import MemoryJobStore

from app.cache import get_response_cache
from app.database import SessionLocal
from app.security.rate_limit import get_rate_limiter
from app.services.notification import get_global_notifier
from app.services.visa_alerts import VisaAlertService
from app.config import get_settings
import os

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None

settings = get_settings()


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the global scheduler instance."""
    global scheduler
    if scheduler is None:
        # Get timezone from TZ environment variable, default to UTC
        tz = os.environ.get('TZ', 'UTC')
        logger.info(f"Scheduler using timezone: {tz}")

        scheduler = AsyncIOScheduler(
            jobstores={'default': MemoryJobStore()},
            timezone=tz
        )

        _setup_scheduled_jobs()

    return scheduler


def _setup_scheduled_jobs():
    hour = settings.visa_check_hour

    scheduler.add_job(
        check_visa_expiry_job,
        trigger=CronTrigger(hour=hour, minute=0),
        id='visa_expiry_check',
        name=f'Visa Expiry Check ({hour:02d}:00)',
        replace_existing=True,
        max_instances=1,
    )

    scheduler.add_job(
        check_schengen_limits_job,
        trigger=CronTrigger(hour=hour, minute=30),
        id='schengen_limit_check',
        name=f'Schengen Limit Check ({hour:02d}:30)',
        replace_existing=True,
        max_instances=1,
    )

    scheduler.add_job(
        cleanup_job,
        trigger=IntervalTrigger(hours=1),
        id='cleanup',
        name='Cache and Rate Limit Cleanup',
        replace_existing=True,
        max_instances=1,
    )

    logger.info("Scheduled jobs configured:")
    logger.info(f"  - Visa expiry check: {hour:02d}:00 daily (local time)")
    logger.info(f"  - Schengen limit check: {hour:02d}:30 daily (local time)")
    logger.info("  - Cleanup: Every hour")


async def check_visa_expiry_job():
    """Mark expired visas and push expiry alerts."""
    logger.info("Starting scheduled visa expiry check")

    db = SessionLocal()
    try:
        result = await VisaAlertService().check_expiring_visas(db)
        if result.failed:
            await get_global_notifier().send_system_alert(
                title="Visa alerts failed",
                message=f"{result.failed} visa alert(s) could not be delivered.",
                priority="high",
                alert_type="warning",
            )
    except Exception as e:
        logger.error(f"Visa expiry check failed: {e}")
        await get_global_notifier().send_system_alert(
            title="Visa check failed",
            message=str(e),
            priority="high",
            alert_type="error",
        )
    finally:
        db.close()


async def check_schengen_limits_job():
    logger.info("Starting scheduled Schengen limit check")

    db = SessionLocal()
    try:
        await VisaAlertService().check_schengen_limits(db)
    except Exception as e:
        logger.error(f"Schengen limit check failed: {e}")
    finally:
        db.close()


async def cleanup_job():
    expired = get_response_cache().cleanup()
    stale = get_rate_limiter().cleanup()
    logger.info(f"Cleanup: {expired} cache entries, {stale} rate-limit windows removed")


def start_scheduler():
    """Start the scheduler (call this from FastAPI startup)."""
    scheduler_instance = get_scheduler()

    if not scheduler_instance.running:
        scheduler_instance.start()
        logger.info("APScheduler started successfully")

        # Log next job times
        for job in scheduler_instance.get_jobs():
            next_run = job.next_run_time
            logger.info(f"Next '{job.name}': {next_run}")
    else:
        logger.warning("Scheduler already running")


def stop_scheduler():
    """Stop the scheduler (call this from FastAPI shutdown)."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")
        scheduler = None


def get_scheduler_status() -> dict:
    """Get scheduler status for the health endpoint."""
    if scheduler is None or not scheduler.running:
        return {
            "running": False,
            "jobs": [],
            "next_run": None
        }

    jobs = []
    next_run = None

    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
        })

        if job.next_run_time and (next_run is None or job.next_run_time < next_run):
            next_run = job.next_run_time

    return {
        "running": True,
        "jobs": jobs,
        "next_run": next_run.isoformat() if next_run else None
    }
