"""
Scheduler service
APScheduler job that stores the day's inventory positions
"""

import logging
from datetime import date
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ebh.core.config import settings
from ebh.db.session import SessionLocal
from ebh.services.inventory import take_snapshot

logger = logging.getLogger(__name__)

# process-wide scheduler
scheduler: Optional[AsyncIOScheduler] = None


async def take_inventory_snapshot(snapshot_date: Optional[date] = None) -> Optional[int]:
    """Run one snapshot in its own session; failures are logged, the job keeps its schedule"""
    try:
        async with SessionLocal() as db:
            return await take_snapshot(db, snapshot_date)
    except Exception:
        logger.exception("❌ Inventory snapshot failed")
        return None


def init_scheduler():
    """Create and start the scheduler"""
    global scheduler

    if not settings.INVENTORY_SNAPSHOT_ENABLED:
        logger.info("📦 Inventory snapshot disabled")
        return

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        take_inventory_snapshot,
        trigger=CronTrigger(
            hour=settings.INVENTORY_SNAPSHOT_HOUR,
            minute=settings.INVENTORY_SNAPSHOT_MINUTE
        ),
        id="inventory_snapshot",
        name="Daily inventory snapshot",
        replace_existing=True
    )

    scheduler.start()
    logger.info(
        f"⏰ Scheduler started - inventory snapshot daily at "
        f"{settings.INVENTORY_SNAPSHOT_HOUR:02d}:{settings.INVENTORY_SNAPSHOT_MINUTE:02d}"
    )


def shutdown_scheduler():
    """Stop the scheduler"""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ Scheduler stopped")


def get_scheduler_status() -> dict:
    if not scheduler:
        return {"enabled": settings.INVENTORY_SNAPSHOT_ENABLED, "running": False, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
        })
    return {"enabled": settings.INVENTORY_SNAPSHOT_ENABLED, "running": scheduler.running, "jobs": jobs}
