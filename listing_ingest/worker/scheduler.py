"""APScheduler job definitions."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from listing_ingest.config import settings
from listing_ingest.worker.tasks import run_scheduled_scrapes

logger = logging.getLogger(__name__)


def setup_scheduler() -> AsyncIOScheduler:
    """
    Setup and configure APScheduler.

    Scheduled scrapes run every settings.scheduled_scrape_interval_minutes
    when settings.scheduled_scrape_enabled is set.

    Returns:
        Configured scheduler instance
    """
    scheduler = AsyncIOScheduler()
    interval = max(1, int(settings.scheduled_scrape_interval_minutes))

    if settings.scheduled_scrape_enabled:
        scheduler.add_job(
            run_scheduled_scrapes,
            IntervalTrigger(minutes=interval),
            id="scheduled_scrape",
            name="Scrape listings for configured cities",
            max_instances=1,  # Prevent overlapping runs
            coalesce=True,
            misfire_grace_time=600,
            replace_existing=True,
        )
        logger.info(
            "Scheduler configured: scrape %s every %d minutes (limit %d)",
            ", ".join(settings.scheduled_scrape_cities),
            interval,
            settings.scheduled_scrape_limit,
        )
    else:
        logger.info("Scheduler configured: scheduled scraping disabled")

    return scheduler
