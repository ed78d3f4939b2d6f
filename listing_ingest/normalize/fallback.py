"""Deterministic normalizer used when enrichment is unavailable or fails."""

import logging

from listing_ingest.models import (
    SYNTHETIC_TAG,
    AreaInfo,
    CanonicalPropertyRecord,
    ContactInfo,
    Location,
    NormalizationContext,
    RawCandidateRecord,
    SourceInfo,
)
from listing_ingest.normalize.parsing import (
    dedupe,
    extract_amenities,
    infer_price_type,
    infer_property_type,
    parse_area,
    parse_bhk,
    parse_price,
)
from listing_ingest.schemas import (
    ADDRESS_MAX_LENGTH,
    AREA_NAME_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
)

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3
UNKNOWN_TITLE = "Unknown Property"
UNKNOWN_CITY = "Unknown City"


def candidate_tags(candidate: RawCandidateRecord) -> list[str]:
    return [SYNTHETIC_TAG] if candidate.synthetic else []


def fallback_normalize(
    candidate: RawCandidateRecord,
    context: NormalizationContext,
) -> CanonicalPropertyRecord:
    """
    Build a canonical record from regex and keyword rules only.

    Never raises; every required field has a default so the result always
    passes schema validation.
    """
    text = candidate.free_text()
    city = context.city or candidate.city or UNKNOWN_CITY
    title = (candidate.title or "").strip()[:TITLE_MAX_LENGTH] or UNKNOWN_TITLE
    location_text = (candidate.location_text or "").strip()

    area = parse_area(text)
    size, unit = area if area else (0.0, "sqft")

    description = (
        (candidate.description_text or "").strip()
        or f"Property available in {location_text or city}"
    )[:DESCRIPTION_MAX_LENGTH]

    return CanonicalPropertyRecord(
        title=title,
        description=description,
        price=parse_price(candidate.price_text) or 0,
        price_type=infer_price_type(f"{candidate.price_text} {title}"),
        location=Location(
            city=city,
            area=location_text[:AREA_NAME_MAX_LENGTH] or None,
            full_address=location_text[:ADDRESS_MAX_LENGTH] or None,
        ),
        property_type=infer_property_type(text),
        bhk=parse_bhk(text),
        area=AreaInfo(size=size, unit=unit),
        amenities=extract_amenities(text),
        images=dedupe(candidate.images),
        source=SourceInfo(
            name=context.source_name,
            url=context.source_url,
            scraped_at=context.scraped_at,
        ),
        contact=ContactInfo(),
        status="active",
        ai_processed=False,
        confidence=FALLBACK_CONFIDENCE,
        tags=candidate_tags(candidate),
    )
