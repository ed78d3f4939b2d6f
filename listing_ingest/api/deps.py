"""FastAPI dependencies."""

from typing import Optional

from listing_ingest.orchestrator import ScrapeOrchestrator

_orchestrator: Optional[ScrapeOrchestrator] = None


def get_orchestrator() -> ScrapeOrchestrator:
    """Dependency for the shared scrape orchestrator, created on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ScrapeOrchestrator()
    return _orchestrator
