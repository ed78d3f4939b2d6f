"""Tests for the streaming HTTP fetcher."""

import asyncio
import time

import httpx
import pytest

from listing_ingest.errors import FetchError
from listing_ingest.ingest.fetchers.static import StreamingFetcher
from listing_ingest.ingest.sources import SourceConfig

HTML_HEADERS = {"content-type": "text/html; charset=utf-8"}

TEST_SOURCE = SourceConfig(
    id="example",
    name="Example",
    strategy="streaming",
    base_url="https://listings.example.com",
    search_urls=(
        "https://listings.example.com/primary/{city}",
        "https://listings.example.com/backup/{city}",
    ),
    container_selectors=(".card",),
    title_strategies=(),
    price_strategies=(),
    location_strategies=(),
)


def chunked(chunks: list[bytes], produced: list[bytes]):
    async def stream():
        for chunk in chunks:
            produced.append(chunk)
            yield chunk

    return stream()


@pytest.mark.asyncio
async def test_stops_at_closing_body_tag():
    """A marker split across chunks is still detected and later chunks are never read."""
    produced: list[bytes] = []
    chunks = [b"<html><body>", b"<div class='card'>Flat</div></bo", b"dy>", b"<script>late()</script>"]

    def handler(request):
        return httpx.Response(200, headers=HTML_HEADERS, content=chunked(chunks, produced))

    fetcher = StreamingFetcher(byte_limit=10_000, timeout=5, transport=httpx.MockTransport(handler))
    try:
        document = await fetcher.fetch(TEST_SOURCE, "Mumbai")
    finally:
        await fetcher.close()

    assert document.url == "https://listings.example.com/primary/mumbai"
    assert document.truncated is False
    assert "</body>" in document.html
    assert "late()" not in document.html
    assert len(produced) == 3


@pytest.mark.asyncio
async def test_stops_at_byte_cap():
    produced: list[bytes] = []
    chunks = [b"x" * 100 for _ in range(10)]

    def handler(request):
        return httpx.Response(200, headers=HTML_HEADERS, content=chunked(chunks, produced))

    fetcher = StreamingFetcher(byte_limit=250, timeout=5, transport=httpx.MockTransport(handler))
    try:
        document = await fetcher.fetch(TEST_SOURCE, "Mumbai")
    finally:
        await fetcher.close()

    assert document.truncated is True
    assert len(document.html) == 300
    assert len(produced) == 3


@pytest.mark.asyncio
async def test_error_status_moves_to_next_url():
    def handler(request):
        if "/primary/" in request.url.path:
            return httpx.Response(503, headers=HTML_HEADERS, content=b"busy")
        return httpx.Response(200, headers=HTML_HEADERS, content=b"<html><body>ok</body></html>")

    fetcher = StreamingFetcher(byte_limit=10_000, timeout=5, transport=httpx.MockTransport(handler))
    try:
        document = await fetcher.fetch(TEST_SOURCE, "New Delhi")
    finally:
        await fetcher.close()

    assert document.url == "https://listings.example.com/backup/new-delhi"
    assert "ok" in document.html


@pytest.mark.asyncio
async def test_all_urls_failing_raises_fetch_error():
    def handler(request):
        if "/primary/" in request.url.path:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(404, headers=HTML_HEADERS, content=b"missing")

    fetcher = StreamingFetcher(byte_limit=10_000, timeout=5, transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(TEST_SOURCE, "Mumbai")
    finally:
        await fetcher.close()

    assert exc_info.value.source == "example"
    assert exc_info.value.url == "https://listings.example.com/backup/mumbai"
    assert "HTTP 404" in exc_info.value.reason


@pytest.mark.asyncio
async def test_timeout_bounds_the_whole_call_across_urls():
    """Two stalling URLs share one deadline instead of getting a full timeout each."""
    requested: list[str] = []

    async def stall():
        yield b"<html><body>"
        await asyncio.sleep(5)
        yield b"</body></html>"

    def handler(request):
        requested.append(request.url.path)
        return httpx.Response(200, headers=HTML_HEADERS, content=stall())

    fetcher = StreamingFetcher(byte_limit=10_000, timeout=0.3, transport=httpx.MockTransport(handler))
    started = time.monotonic()
    try:
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(TEST_SOURCE, "Mumbai")
    finally:
        await fetcher.close()
    elapsed = time.monotonic() - started

    assert "timed out" in exc_info.value.reason
    assert requested[0] == "/primary/mumbai"
    assert elapsed < 0.55
