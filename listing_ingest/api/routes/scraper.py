"""Scraper trigger API endpoints."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from listing_ingest.api.deps import get_orchestrator
from listing_ingest.config import settings
from listing_ingest.errors import UnknownSourceError
from listing_ingest.ingest.sources import SOURCES
from listing_ingest.orchestrator import ScrapeOrchestrator
from listing_ingest.schemas import ClearResponse, ScrapeRequest, ScrapeResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/scraper", tags=["scraper"])


@router.post("/all", response_model=ScrapeResponse)
async def scrape_all(
    request: Optional[ScrapeRequest] = None,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Scrape every enabled source, splitting the limit evenly across them."""
    request = request or ScrapeRequest()
    logger.info(f"Scrape requested: all sources, city={request.city}, limit={request.limit}")
    result = await orchestrator.scrape_all(request.city, request.limit)
    return result.to_dict()


@router.get("/status")
async def scraper_status(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Store statistics, last run summary and configured sources."""
    return await orchestrator.get_status()


@router.get("/config")
async def scraper_config() -> dict[str, Any]:
    """Effective scraper configuration."""
    return {
        "available_sources": sorted(SOURCES),
        "enabled_sources": settings.enabled_sources,
        "timeout_seconds": settings.scraper_timeout_seconds,
        "max_attempts": settings.scraper_max_retries,
        "retry_base_delay": settings.scraper_retry_base_delay,
        "stream_byte_limit": settings.stream_byte_limit,
        "synthetic_fallback_enabled": settings.synthetic_fallback_enabled,
        "ai_enrichment_enabled": settings.ai_enrichment_enabled,
        "scheduled_scrape_enabled": settings.scheduled_scrape_enabled,
    }


@router.delete("/clear", response_model=ClearResponse)
async def clear_listings(
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Delete all stored listings."""
    deleted = await orchestrator.clear_all()
    return ClearResponse(success=True, deleted=deleted, message=f"Deleted {deleted} listings")


@router.post("/{source_id}", response_model=ScrapeResponse)
async def scrape_source(
    source_id: str,
    request: Optional[ScrapeRequest] = None,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Scrape a single source."""
    request = request or ScrapeRequest()
    try:
        result = await orchestrator.scrape_one_source(source_id, request.city, request.limit)
    except UnknownSourceError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return result.to_dict()
