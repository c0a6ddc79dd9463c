from datetime import datetime, timezone
from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        logger.info("Tick refresh scheduler started")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Tick refresh scheduler stopped")


def schedule_interval(func, seconds: int, job_id: str, run_now: bool = True):
    """Register (or replace) an interval job; optionally fire it immediately."""
    kwargs = {"seconds": seconds, "id": job_id, "replace_existing": True, "max_instances": 1}
    if run_now:
        kwargs["next_run_time"] = datetime.now(timezone.utc)
    scheduler.add_job(func, "interval", **kwargs)
