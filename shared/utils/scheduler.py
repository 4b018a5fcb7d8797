from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging

logger = logging.getLogger(__name__)

# One pass at a time; a late trigger folds into the next run instead of stacking
scheduler = AsyncIOScheduler(job_defaults={"max_instances": 1, "coalesce": True})


def start_scheduler():
    if not scheduler.running:
        scheduler.start()
        logger.info("Background scheduler started")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped")
