"""Tests for batch reconciliation."""

from dataclasses import replace

import pytest

from listing_ingest.errors import DuplicateRecordError
from listing_ingest.models import NormalizationContext
from listing_ingest.normalize.fallback import fallback_normalize
from listing_ingest.reconcile import BatchReconciler

from tests.fakes import InMemoryFingerprintStore


def make_record(candidate, url: str):
    context = NormalizationContext(source_name="Housing.com", source_url=url, city="Mumbai")
    return fallback_normalize(candidate, context)


@pytest.mark.asyncio
async def test_classifies_created_duplicate_and_error(store, candidate):
    existing = make_record(candidate, "https://housing.com/p/1")
    await store.insert(existing)

    records = [
        existing,
        make_record(candidate, "https://housing.com/p/2"),
        replace(make_record(candidate, "https://housing.com/p/3"), price=-5),
    ]

    result = await BatchReconciler(store).reconcile(records)

    assert result.scraped == 3
    assert (result.created, result.duplicates, result.errors) == (1, 1, 1)
    assert result.created_records[0]["title"] == existing.title
    assert "price" in result.error_entries[0].reason


@pytest.mark.asyncio
async def test_duplicates_within_one_batch(store, candidate):
    record = make_record(candidate, "https://housing.com/p/7")

    result = await BatchReconciler(store).reconcile([record, record])

    assert (result.created, result.duplicates, result.errors) == (1, 1, 0)


@pytest.mark.asyncio
async def test_insert_race_counts_as_duplicate(candidate):
    """A fingerprint inserted after the existence check is still a duplicate."""

    class RacingStore(InMemoryFingerprintStore):
        async def insert(self, record):
            raise DuplicateRecordError(*record.fingerprint)

    result = await BatchReconciler(RacingStore()).reconcile(
        [make_record(candidate, "https://housing.com/p/9")]
    )

    assert (result.created, result.duplicates, result.errors) == (0, 1, 0)


@pytest.mark.asyncio
async def test_store_failure_does_not_stop_the_batch(candidate):
    class FlakyStore(InMemoryFingerprintStore):
        async def insert(self, record):
            if record.source.url.endswith("/1"):
                raise ConnectionError("database unavailable")
            return await super().insert(record)

    records = [make_record(candidate, f"https://housing.com/p/{i}") for i in range(1, 4)]

    result = await BatchReconciler(FlakyStore()).reconcile(records)

    assert (result.created, result.duplicates, result.errors) == (2, 0, 1)
    assert result.error_entries[0].reason == "database unavailable"


@pytest.mark.asyncio
async def test_empty_batch(store):
    result = await BatchReconciler(store).reconcile([])

    assert (result.scraped, result.created, result.duplicates, result.errors) == (0, 0, 0, 0)
    assert result.error_entries == []
