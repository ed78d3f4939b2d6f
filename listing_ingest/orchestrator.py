"""Scrape orchestration: concurrent per-source pipelines feeding one reconciliation."""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from listing_ingest import metrics
from listing_ingest.config import settings
from listing_ingest.db.store import FingerprintStore, SqlFingerprintStore
from listing_ingest.ingest.base import BaseFetcher
from listing_ingest.ingest.extraction import listing_extractor
from listing_ingest.ingest.registry import FetcherRegistry
from listing_ingest.ingest.retry import RETRYABLE_ERRORS, with_retry
from listing_ingest.ingest.sources import SourceConfig, enabled_sources, get_source
from listing_ingest.ingest.synthetic import generate_synthetic_records
from listing_ingest.logging_config import get_logger
from listing_ingest.models import (
    BatchError,
    CanonicalPropertyRecord,
    NormalizationContext,
    RawCandidateRecord,
    ScrapeBatchResult,
    utcnow,
)
from listing_ingest.normalize.enrichment import EnrichmentNormalizer
from listing_ingest.reconcile import BatchReconciler

logger = logging.getLogger(__name__)


def split_limit(total: int, parts: int) -> list[int]:
    """Split ``total`` into ``parts`` shares differing by at most one, earliest first."""
    if parts <= 0:
        return []
    base, remainder = divmod(max(total, 0), parts)
    return [base + (1 if i < remainder else 0) for i in range(parts)]


class ScrapeOrchestrator:
    """
    Run the ingestion pipeline across sources.

    Each source runs acquire -> extract (-> synthetic fill) -> normalize as an
    independent task. A failing source is reported and never stops the others.
    """

    def __init__(
        self,
        store: Optional[FingerprintStore] = None,
        normalizer: Optional[EnrichmentNormalizer] = None,
        fetchers: Optional[dict[str, BaseFetcher]] = None,
        sources: Optional[list[SourceConfig]] = None,
        synthetic_seed: Optional[int] = None,
        max_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        enrichment_concurrency: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize orchestrator.

        Args:
            store: Fingerprint store (defaults to the SQL store)
            normalizer: Enrichment normalizer
            fetchers: Fetcher overrides keyed by strategy; others come from FetcherRegistry
            sources: Sources to scrape (defaults to settings.enabled_sources)
            synthetic_seed: Seed for synthetic fill (defaults to settings.synthetic_seed)
            max_attempts: Fetch attempts per source
            retry_base_delay: Linear backoff unit in seconds
            enrichment_concurrency: Candidates normalized in parallel per source
            sleep: Sleep coroutine used between retries
        """
        self.store = store if store is not None else SqlFingerprintStore()
        self.reconciler = BatchReconciler(self.store)
        self.normalizer = normalizer or EnrichmentNormalizer()
        self._fetchers = fetchers or {}
        self._sources = sources
        self.synthetic_seed = (
            synthetic_seed if synthetic_seed is not None else settings.synthetic_seed
        )
        self._unseeded_rng = random.Random()
        self.max_attempts = max_attempts or settings.scraper_max_retries
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.scraper_retry_base_delay
        )
        self.enrichment_concurrency = max(
            1, enrichment_concurrency or settings.enrichment_concurrency
        )
        self._sleep = sleep

        self.last_result: Optional[ScrapeBatchResult] = None

    @property
    def sources(self) -> list[SourceConfig]:
        if self._sources is not None:
            return list(self._sources)
        return enabled_sources(settings.enabled_sources)

    def _get_fetcher(self, source: SourceConfig) -> BaseFetcher:
        if source.strategy in self._fetchers:
            return self._fetchers[source.strategy]
        return FetcherRegistry.get_fetcher(source.strategy)

    async def collect_candidates(
        self,
        source: SourceConfig,
        city: str,
        limit: int,
    ) -> list[RawCandidateRecord]:
        """
        Acquire and extract candidates for one source.

        Falls back to synthetic records when acquisition keeps failing or the
        page yields nothing.

        Raises:
            FetchError: Acquisition failed and synthetic fill is disabled
        """
        log = get_logger(__name__, source=source.id, city=city)
        fetcher = self._get_fetcher(source)

        try:
            document = await with_retry(
                lambda: fetcher.fetch(source, city),
                max_attempts=self.max_attempts,
                base_delay=self.retry_base_delay,
                label=f"[{source.name}] fetch",
                sleep=self._sleep,
            )
        except RETRYABLE_ERRORS as e:
            if not settings.synthetic_fallback_enabled:
                raise
            log.warning(f"[{source.name}] Acquisition failed, using synthetic records: {e}")
            return self._synthetic(source, city, limit, reason="fetch_failed")

        candidates = listing_extractor.extract(document, source, limit, city=city)
        if not candidates:
            log.warning(f"[{source.name}] No listings extracted from {document.url}")
            if not settings.synthetic_fallback_enabled:
                return []
            return self._synthetic(source, city, limit, reason="empty_extraction")

        metrics.candidates_extracted_total.labels(source=source.id, origin="extracted").inc(
            len(candidates)
        )
        return candidates

    def synthetic_rng(self, source: SourceConfig, city: str, limit: int) -> random.Random:
        """
        Random source for one synthetic fill.

        With a pinned seed the generator is derived from (seed, source, city,
        share), so the same request yields the same records in every run and
        regardless of how sources interleave.
        """
        if self.synthetic_seed is None:
            return self._unseeded_rng
        return random.Random(
            f"{self.synthetic_seed}:{source.id}:{city.strip().lower()}:{limit}"
        )

    def _synthetic(
        self,
        source: SourceConfig,
        city: str,
        limit: int,
        reason: str,
    ) -> list[RawCandidateRecord]:
        metrics.fallback_activations_total.labels(source=source.id, reason=reason).inc()
        rng = self.synthetic_rng(source, city, limit)
        records = generate_synthetic_records(source, city, limit, rng)
        metrics.candidates_extracted_total.labels(source=source.id, origin="synthetic").inc(
            len(records)
        )
        return records

    async def normalize_candidates(
        self,
        source: SourceConfig,
        city: str,
        candidates: list[RawCandidateRecord],
    ) -> list[CanonicalPropertyRecord]:
        """Normalize candidates, preserving extraction order."""
        search_urls = source.search_urls_for(city)
        default_url = search_urls[0] if search_urls else source.base_url

        def context_for(candidate: RawCandidateRecord) -> NormalizationContext:
            return NormalizationContext(
                source_name=source.name,
                source_url=candidate.source_link or default_url,
                city=city,
            )

        if self.enrichment_concurrency == 1:
            records = []
            for candidate in candidates:
                records.append(
                    await self.normalizer.normalize_with_fallback(candidate, context_for(candidate))
                )
            return records

        semaphore = asyncio.Semaphore(self.enrichment_concurrency)

        async def bounded(candidate: RawCandidateRecord) -> CanonicalPropertyRecord:
            async with semaphore:
                return await self.normalizer.normalize_with_fallback(
                    candidate, context_for(candidate)
                )

        return list(await asyncio.gather(*(bounded(c) for c in candidates)))

    async def run_source_pipeline(
        self,
        source: SourceConfig,
        city: str,
        limit: int,
    ) -> list[CanonicalPropertyRecord]:
        """Acquire, extract and normalize up to ``limit`` records for one source."""
        logger.info(f"[{source.name}] Starting pipeline for {city} (limit {limit})")
        candidates = await self.collect_candidates(source, city, limit)
        records = await self.normalize_candidates(source, city, candidates)
        logger.info(f"[{source.name}] Pipeline produced {len(records)} records")
        return records

    async def _run(
        self,
        sources: list[SourceConfig],
        city: str,
        total_limit: int,
        scope: str,
    ) -> ScrapeBatchResult:
        started_at = utcnow()
        plan = [
            (source, share)
            for source, share in zip(sources, split_limit(total_limit, len(sources)))
            if share > 0
        ]

        outcomes = await asyncio.gather(
            *(self.run_source_pipeline(source, city, share) for source, share in plan),
            return_exceptions=True,
        )

        records: list[CanonicalPropertyRecord] = []
        failures: list[BatchError] = []
        for (source, _), outcome in zip(plan, outcomes):
            if isinstance(outcome, BaseException):
                reason = str(outcome) or type(outcome).__name__
                logger.error(f"[{source.name}] Pipeline failed: {reason}")
                failures.append(BatchError(source.name, reason))
            else:
                records.extend(outcome)

        result = await self.reconciler.reconcile(records)
        for failure in failures:
            result.add_error(failure.source_or_record, failure.reason)

        result.city = city
        result.started_at = started_at
        result.finished_at = utcnow()
        result.message = (
            f"Scraped {result.scraped} listings for {city} from "
            f"{len(plan) - len(failures)}/{len(plan)} sources"
        )

        status = "partial" if failures else "success"
        if plan and len(failures) == len(plan):
            status = "failed"
        metrics.scrape_runs_total.labels(scope=scope, status=status).inc()
        metrics.last_scrape_timestamp.labels(scope=scope).set_to_current_time()

        logger.info(
            f"Scrape run ({scope}) finished: {result.created} created, "
            f"{result.duplicates} duplicates, {result.errors} errors"
        )
        self.last_result = result
        return result

    async def scrape_all(self, city: str, total_limit: int) -> ScrapeBatchResult:
        """
        Scrape every enabled source, splitting ``total_limit`` evenly.

        Never raises for source failures; each failed source becomes one
        error entry on the result.
        """
        return await self._run(self.sources, city, total_limit, scope="all")

    async def scrape_one_source(self, source_id: str, city: str, limit: int) -> ScrapeBatchResult:
        """
        Scrape a single source.

        Raises:
            UnknownSourceError: Source id is not in the catalogue
        """
        source = get_source(source_id)
        return await self._run([source], city, limit, scope=source.id)

    async def get_status(self) -> dict[str, Any]:
        """Store statistics, last run summary and configured sources."""
        stats = await self.store.get_stats()

        last_run = None
        if self.last_result:
            last_run = self.last_result.to_dict()
            last_run.pop("properties", None)

        return {
            "stats": stats,
            "last_run": last_run,
            "sources": [
                {"id": s.id, "name": s.name, "strategy": s.strategy} for s in self.sources
            ],
            "ai_enrichment_enabled": self.normalizer.enabled,
            "synthetic_fallback_enabled": settings.synthetic_fallback_enabled,
        }

    async def clear_all(self) -> int:
        """Delete every stored listing."""
        deleted = await self.store.delete_all()
        logger.warning(f"Cleared {deleted} stored listings")
        return deleted
