"""Background scrape jobs."""

import logging

from listing_ingest.api.deps import get_orchestrator
from listing_ingest.config import settings

logger = logging.getLogger(__name__)


async def run_scheduled_scrapes() -> None:
    """Scrape every configured city in turn. One city failing does not skip the rest."""
    orchestrator = get_orchestrator()

    for city in settings.scheduled_scrape_cities:
        try:
            result = await orchestrator.scrape_all(city, settings.scheduled_scrape_limit)
            logger.info(f"Scheduled scrape for {city}: {result.message}")
        except Exception as e:
            logger.exception(f"Scheduled scrape for {city} failed: {e}")
