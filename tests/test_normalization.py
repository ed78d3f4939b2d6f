"""Tests for LLM enrichment and the deterministic fallback normalizer."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from listing_ingest.models import NormalizationContext, RawCandidateRecord
from listing_ingest.normalize.enrichment import EnrichmentNormalizer
from listing_ingest.normalize.fallback import (
    FALLBACK_CONFIDENCE,
    UNKNOWN_CITY,
    UNKNOWN_TITLE,
    fallback_normalize,
)
from listing_ingest.reconcile import BatchReconciler, validate_record


def make_llm(reply=None, error=None):
    llm = MagicMock()
    llm.is_configured = True
    if error is not None:
        llm.call_llm_structured = AsyncMock(side_effect=error)
    else:
        llm.call_llm_structured = AsyncMock(return_value=reply)
    return llm


FULL_REPLY = {
    "title": "2 BHK Sea-facing Apartment in Bandra West",
    "description": "Sea-facing two bedroom apartment with parking and gym.",
    "price": 12000000,
    "price_type": "Sale",
    "location": {"city": "Mumbai", "area": "Bandra West", "full_address": "Carter Road, Bandra West"},
    "property_type": "APARTMENT",
    "bhk": 2,
    "area": {"size": 950, "unit": "sqft"},
    "amenities": ["Parking", "Gym", "Parking"],
    "contact": {"phone": None, "email": None, "agent": "Coastal Realty"},
    "status": "active",
    "confidence": 0.86,
}


# =============================================================================
# Fallback normalizer
# =============================================================================


def test_fallback_applies_deterministic_rules(candidate, context):
    record = fallback_normalize(candidate, context)

    assert record.title == "2 BHK Apartment for Sale in Bandra"
    assert record.price == 12_000_000
    assert record.price_type == "sale"
    assert record.property_type == "apartment"
    assert record.bhk == 2
    assert (record.area.size, record.area.unit) == (950.0, "sqft")
    assert record.amenities == ["Parking", "Gym"]
    assert record.images == ["https://img.example.com/a.jpg"]
    assert record.location.city == "Mumbai"
    assert record.location.area == "Bandra West"
    assert record.confidence == FALLBACK_CONFIDENCE
    assert record.ai_processed is False
    assert record.tags == []


def test_fallback_fills_every_required_field():
    """Even an empty candidate yields a record that passes schema validation."""
    bare = RawCandidateRecord(title="", price_text="Price on request", location_text="")
    context = NormalizationContext(source_name="OLX", source_url="https://www.olx.in/item/1", city="")

    record = fallback_normalize(bare, context)

    assert record.title == UNKNOWN_TITLE
    assert record.location.city == UNKNOWN_CITY
    assert record.price == 0
    assert record.property_type == "other"
    assert record.bhk is None
    assert (record.area.size, record.area.unit) == (0.0, "sqft")
    assert record.description == f"Property available in {UNKNOWN_CITY}"
    validate_record(record)


def test_fallback_truncates_long_fields(context):
    long = RawCandidateRecord(
        title="Luxury " * 60,
        price_text="₹90 Lakh",
        location_text="Juhu",
        description_text="x" * 5000,
    )

    record = fallback_normalize(long, context)

    assert len(record.title) <= 200
    assert len(record.description) == 2000
    validate_record(record)


def test_fallback_tags_synthetic_candidates(context):
    synthetic = RawCandidateRecord(
        title="2 BHK Flat for Sale in Central Mumbai",
        price_text="₹55 Lakh",
        location_text="Central Mumbai",
        synthetic=True,
    )

    assert fallback_normalize(synthetic, context).tags == ["synthetic"]


# =============================================================================
# Enrichment
# =============================================================================


@pytest.mark.asyncio
async def test_reply_is_merged_with_lowercased_enums(candidate, context):
    normalizer = EnrichmentNormalizer(llm=make_llm(FULL_REPLY), enabled=True)

    record = await normalizer.normalize(candidate, context)

    assert record.title == "2 BHK Sea-facing Apartment in Bandra West"
    assert record.price == 12_000_000
    assert record.price_type == "sale"
    assert record.property_type == "apartment"
    assert record.location.full_address == "Carter Road, Bandra West"
    assert record.amenities == ["Parking", "Gym"]
    assert record.contact.agent == "Coastal Realty"
    assert record.ai_processed is True
    assert record.confidence == pytest.approx(0.86)
    # Images always come from the candidate
    assert record.images == ["https://img.example.com/a.jpg"]


@pytest.mark.asyncio
async def test_reply_cannot_override_provenance(candidate, context):
    reply = dict(FULL_REPLY, source={"name": "Elsewhere", "url": "https://evil.example.com/x"})
    normalizer = EnrichmentNormalizer(llm=make_llm(reply), enabled=True)

    record = await normalizer.normalize(candidate, context)

    assert record.source.name == "Housing.com"
    assert record.source.url == "https://housing.com/in/buy/projects/page/101"
    assert record.source.scraped_at == context.scraped_at


@pytest.mark.asyncio
async def test_absent_reply_fields_use_fallback_values(candidate, context):
    normalizer = EnrichmentNormalizer(llm=make_llm({"title": "Bandra 2 BHK"}), enabled=True)

    record = await normalizer.normalize(candidate, context)

    assert record.title == "Bandra 2 BHK"
    assert record.price == 12_000_000
    assert record.bhk == 2
    assert record.location.city == "Mumbai"
    assert record.ai_processed is True
    assert record.confidence == 0.5


@pytest.mark.asyncio
@pytest.mark.parametrize("raw,expected", [(1.7, 1.0), (0.02, 0.1), (0.64, 0.64)])
async def test_confidence_is_clamped(candidate, context, raw, expected):
    normalizer = EnrichmentNormalizer(llm=make_llm(dict(FULL_REPLY, confidence=raw)), enabled=True)

    record = await normalizer.normalize(candidate, context)

    assert record.confidence == pytest.approx(expected)


@pytest.mark.asyncio
async def test_string_price_and_bhk_are_parsed(candidate, context):
    reply = dict(FULL_REPLY, price="₹95 Lakh", bhk="3 BHK")
    normalizer = EnrichmentNormalizer(llm=make_llm(reply), enabled=True)

    record = await normalizer.normalize(candidate, context)

    assert record.price == 9_500_000
    assert record.bhk == 3


@pytest.mark.asyncio
async def test_non_json_reply_falls_back(candidate, context):
    llm = make_llm(error=ValueError("LLM response was not valid JSON"))
    normalizer = EnrichmentNormalizer(llm=llm, enabled=True)

    record = await normalizer.normalize_with_fallback(candidate, context)

    assert record.ai_processed is False
    assert record.confidence == FALLBACK_CONFIDENCE
    assert record.price == 12_000_000
    llm.call_llm_structured.assert_awaited_once()


@pytest.mark.asyncio
async def test_schema_violation_falls_back(candidate, context):
    normalizer = EnrichmentNormalizer(
        llm=make_llm(dict(FULL_REPLY, property_type="castle")), enabled=True
    )

    record = await normalizer.normalize_with_fallback(candidate, context)

    assert record.ai_processed is False
    assert record.property_type == "apartment"


@pytest.mark.asyncio
async def test_disabled_enrichment_never_calls_llm(candidate, context):
    llm = make_llm(FULL_REPLY)
    normalizer = EnrichmentNormalizer(llm=llm, enabled=False)

    record = await normalizer.normalize_with_fallback(candidate, context)

    assert record.ai_processed is False
    llm.call_llm_structured.assert_not_called()


@pytest.mark.asyncio
async def test_unconfigured_llm_falls_back(candidate, context):
    llm = make_llm(FULL_REPLY)
    llm.is_configured = False
    normalizer = EnrichmentNormalizer(llm=llm, enabled=True)

    record = await normalizer.normalize_with_fallback(candidate, context)

    assert record.confidence == FALLBACK_CONFIDENCE
    llm.call_llm_structured.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "override",
    [
        {"contact": {"phone": "Not available", "email": None, "agent": None}},
        {"contact": {"phone": None, "email": "agent at example", "agent": None}},
        {"bhk": 25},
        {"amenities": ["Parking", "x" * 60]},
    ],
    ids=["phone", "email", "bhk", "amenity"],
)
async def test_reply_breaking_stored_schema_falls_back_and_persists(
    candidate, context, store, override
):
    normalizer = EnrichmentNormalizer(llm=make_llm(dict(FULL_REPLY, **override)), enabled=True)

    record = await normalizer.normalize_with_fallback(candidate, context)
    result = await BatchReconciler(store).reconcile([record])

    assert record.ai_processed is False
    assert record.confidence == FALLBACK_CONFIDENCE
    assert result.created == 1
    assert result.errors == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "override",
    [
        {"price": float("inf")},
        {"price": float("nan")},
        {"confidence": float("inf")},
        {"area": {"size": float("inf"), "unit": "sqft"}},
    ],
    ids=["price-inf", "price-nan", "confidence-inf", "area-inf"],
)
async def test_non_finite_numbers_fall_back(candidate, context, override):
    normalizer = EnrichmentNormalizer(
        llm=make_llm(dict(FULL_REPLY, title="x", **override)), enabled=True
    )

    record = await normalizer.normalize_with_fallback(candidate, context)

    assert record.ai_processed is False
    assert record.price == 12_000_000
    validate_record(record)
