"""Streaming HTTP fetcher for server-rendered listing pages."""

import asyncio
import logging
import re
import time
from typing import Optional

import httpx

from listing_ingest import metrics
from listing_ingest.config import settings
from listing_ingest.errors import FetchError
from listing_ingest.ingest.base import BaseFetcher, RawDocument
from listing_ingest.ingest.sources import SourceConfig

logger = logging.getLogger(__name__)

BODY_CLOSE = re.compile(rb"</body\s*>", re.IGNORECASE)

# Bytes carried over between chunks so a marker split across chunks is still seen
_MARKER_OVERLAP = 16


class StreamingFetcher(BaseFetcher):
    """Fetch the head of a page, stopping at a byte cap or the closing body tag."""

    strategy = "streaming"

    def __init__(
        self,
        byte_limit: Optional[int] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize streaming fetcher.

        Args:
            byte_limit: Stop reading once this many bytes are received
            timeout: Deadline in seconds for one fetch call across all candidate URLs
            user_agent: User-Agent header value
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.byte_limit = byte_limit or settings.stream_byte_limit
        self.timeout = timeout or settings.scraper_timeout_seconds
        self.user_agent = user_agent or settings.scraper_user_agent
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-IN,en;q=0.8",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, source: SourceConfig, city: str) -> RawDocument:
        """
        Fetch the first candidate search URL that responds.

        Args:
            source: Source configuration
            city: City query

        Returns:
            RawDocument holding the (possibly partial) HTML

        Raises:
            FetchError: If every candidate URL failed
        """
        urls = source.search_urls_for(city)
        last_error: Optional[FetchError] = None
        deadline = time.monotonic() + self.timeout

        for url in urls:
            started = time.monotonic()
            remaining = deadline - started
            if remaining <= 0:
                last_error = FetchError(source.id, url, f"timed out after {self.timeout}s")
                metrics.fetch_attempts_total.labels(source=source.id, status="error").inc()
                break

            try:
                html, truncated = await asyncio.wait_for(
                    self._read_partial(source, url), timeout=remaining
                )
            except asyncio.TimeoutError:
                last_error = FetchError(source.id, url, f"timed out after {self.timeout}s")
            except httpx.HTTPError as e:
                last_error = FetchError(source.id, url, f"{type(e).__name__}: {e}")
            except FetchError as e:
                last_error = e
            else:
                metrics.fetch_attempts_total.labels(source=source.id, status="success").inc()
                metrics.fetch_duration_seconds.labels(source=source.id).observe(
                    time.monotonic() - started
                )
                logger.info(
                    f"[{source.name}] Streamed {len(html)} chars from {url}"
                    f"{' (truncated at byte cap)' if truncated else ''}"
                )
                return RawDocument(
                    source_id=source.id,
                    url=url,
                    html=html,
                    strategy=self.strategy,
                    truncated=truncated,
                )

            metrics.fetch_attempts_total.labels(source=source.id, status="error").inc()
            logger.warning(f"[{source.name}] {last_error}")

        raise last_error or FetchError(source.id, None, "no candidate URLs configured")

    async def _read_partial(self, source: SourceConfig, url: str) -> tuple[str, bool]:
        """
        Read the response body incrementally.

        Returns:
            Tuple of (decoded html, stopped_at_byte_cap)
        """
        client = await self._get_client()
        chunks: list[bytes] = []
        received = 0
        tail = b""

        async with client.stream("GET", url) as response:
            if response.status_code >= 400:
                raise FetchError(source.id, url, f"HTTP {response.status_code}")

            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
                received += len(chunk)

                if received >= self.byte_limit:
                    return self._decode(chunks, response), True

                window = tail + chunk
                if BODY_CLOSE.search(window):
                    break
                tail = window[-_MARKER_OVERLAP:]

            return self._decode(chunks, response), False

    @staticmethod
    def _decode(chunks: list[bytes], response: httpx.Response) -> str:
        encoding = response.encoding or "utf-8"
        try:
            return b"".join(chunks).decode(encoding, errors="replace")
        except LookupError:
            return b"".join(chunks).decode("utf-8", errors="replace")
