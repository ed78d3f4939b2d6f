"""LLM-backed listing normalization with deterministic fallback."""

import logging
from dataclasses import replace
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, ValidationError, field_validator

from listing_ingest import metrics
from listing_ingest.ai.llm_service import LLMService, llm_service
from listing_ingest.ai.prompts import (
    ENRICHMENT_SYSTEM_PROMPT,
    LISTING_ENRICHMENT_SCHEMA,
    ListingEnrichmentPrompt,
)
from listing_ingest.config import settings
from listing_ingest.errors import EnrichmentError, RecordValidationError
from listing_ingest.models import (
    AreaInfo,
    CanonicalPropertyRecord,
    ContactInfo,
    Location,
    NormalizationContext,
    RawCandidateRecord,
)
from listing_ingest.normalize.fallback import fallback_normalize
from listing_ingest.normalize.parsing import dedupe, parse_bhk, parse_price
from listing_ingest.reconcile import validate_record
from listing_ingest.schemas import (
    AMENITY_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    MAX_BHK,
    TITLE_MAX_LENGTH,
    ContactSchema,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


class ReplyLocation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    city: Optional[str] = None
    area: Optional[str] = None
    full_address: Optional[str] = None


class ReplyArea(BaseModel):
    model_config = ConfigDict(extra="ignore")

    size: Optional[FiniteFloat] = None
    unit: Optional[Literal["sqft", "sqm", "acres", "sqyd"]] = None

    @field_validator("unit", mode="before")
    @classmethod
    def normalize_unit(cls, value: Any) -> Any:
        return _lower(value)


class ReplyContact(ContactSchema):
    """Contact block; phone and email formats are checked as for stored listings."""

    model_config = ConfigDict(extra="ignore")


class EnrichmentReply(BaseModel):
    """Shape an enrichment reply must have. Provenance keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Union[FiniteFloat, str]] = None
    price_type: Optional[Literal["sale", "rent"]] = None
    location: Optional[ReplyLocation] = None
    property_type: Optional[
        Literal["apartment", "house", "villa", "plot", "commercial", "other"]
    ] = None
    bhk: Optional[Union[int, str]] = None
    area: Optional[ReplyArea] = None
    amenities: list[Annotated[str, Field(max_length=AMENITY_MAX_LENGTH)]] = []
    contact: Optional[ReplyContact] = None
    status: Optional[Literal["active", "sold", "rented", "inactive", "pending"]] = None
    confidence: Optional[FiniteFloat] = None

    @field_validator("price_type", "property_type", "status", mode="before")
    @classmethod
    def normalize_enums(cls, value: Any) -> Any:
        return _lower(value)

    @field_validator("bhk")
    @classmethod
    def bhk_in_range(cls, value: Any) -> Any:
        if isinstance(value, int) and not 0 <= value <= MAX_BHK:
            raise ValueError(f"bhk must be between 0 and {MAX_BHK}")
        return value

    def price_rupees(self) -> Optional[int]:
        if self.price is None:
            return None
        if isinstance(self.price, str):
            return parse_price(self.price)
        if self.price < 0:
            return None
        return int(round(self.price))

    def bedrooms(self) -> Optional[int]:
        if self.bhk is None:
            return None
        if isinstance(self.bhk, int):
            return self.bhk if self.bhk > 0 else None
        text = self.bhk.strip()
        if text.isdigit():
            return int(text)
        return parse_bhk(text)

    def clamped_confidence(self) -> float:
        if self.confidence is None:
            return DEFAULT_CONFIDENCE
        return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, self.confidence))


def merge_reply(
    candidate: RawCandidateRecord,
    context: NormalizationContext,
    reply: EnrichmentReply,
) -> CanonicalPropertyRecord:
    """
    Combine an enrichment reply with the candidate.

    Reply fields win; absent reply fields fall back to the deterministic rules
    applied to the candidate. Source provenance always comes from the context.
    """
    base = fallback_normalize(candidate, context)

    location = base.location
    if reply.location:
        location = Location(
            city=reply.location.city or location.city,
            area=reply.location.area or location.area,
            full_address=reply.location.full_address or location.full_address,
        )

    area = base.area
    if reply.area and reply.area.size is not None and reply.area.size >= 0:
        area = AreaInfo(size=reply.area.size, unit=reply.area.unit or "sqft")

    contact = base.contact
    if reply.contact:
        contact = ContactInfo(
            phone=reply.contact.phone,
            email=reply.contact.email,
            agent=reply.contact.agent,
        )

    price = reply.price_rupees()
    bhk = reply.bedrooms()

    return replace(
        base,
        title=(reply.title or "").strip()[:TITLE_MAX_LENGTH] or base.title,
        description=(reply.description or "").strip()[:DESCRIPTION_MAX_LENGTH] or base.description,
        price=price if price is not None else base.price,
        price_type=reply.price_type or base.price_type,
        location=location,
        property_type=reply.property_type or base.property_type,
        bhk=bhk if bhk is not None else base.bhk,
        area=area,
        amenities=dedupe(reply.amenities) or base.amenities,
        images=base.images,
        contact=contact,
        status=reply.status or base.status,
        ai_processed=True,
        confidence=reply.clamped_confidence(),
    )


class EnrichmentNormalizer:
    """Normalize candidates through the LLM, falling back to deterministic rules."""

    def __init__(self, llm: Optional[LLMService] = None, enabled: Optional[bool] = None):
        self.llm = llm or llm_service
        self.enabled = settings.ai_enrichment_enabled if enabled is None else enabled

    async def normalize(
        self,
        candidate: RawCandidateRecord,
        context: NormalizationContext,
    ) -> CanonicalPropertyRecord:
        """
        Normalize one candidate through the enrichment service.

        Raises:
            EnrichmentError: Service failure, non-JSON reply or reply schema violation
        """
        if not self.enabled:
            raise EnrichmentError("AI enrichment disabled")
        if not self.llm.is_configured:
            raise EnrichmentError("LLM service not configured")

        prompt = ListingEnrichmentPrompt(
            title=candidate.title,
            price_text=candidate.price_text,
            location_text=candidate.location_text,
            city=context.city,
            description=candidate.description_text,
        ).to_prompt()

        try:
            raw = await self.llm.call_llm_structured(
                prompt=prompt,
                response_schema=LISTING_ENRICHMENT_SCHEMA,
                system_prompt=ENRICHMENT_SYSTEM_PROMPT,
            )
        except Exception as e:
            raise EnrichmentError(f"Enrichment call failed: {e}") from e

        try:
            reply = EnrichmentReply.model_validate(raw)
        except ValidationError as e:
            raise EnrichmentError(
                f"Enrichment reply violates schema: {e.errors()[0]['msg']}"
            ) from e

        try:
            record = merge_reply(candidate, context, reply)
        except (ArithmeticError, ValueError, TypeError) as e:
            raise EnrichmentError(f"Enrichment reply could not be merged: {e}") from e

        # Values that pass the reply shape can still break the stored schema
        try:
            validate_record(record)
        except RecordValidationError as e:
            raise EnrichmentError(f"Enriched record fails validation: {e}") from e

        return record

    async def normalize_with_fallback(
        self,
        candidate: RawCandidateRecord,
        context: NormalizationContext,
    ) -> CanonicalPropertyRecord:
        """Normalize, routing any EnrichmentError to the deterministic normalizer."""
        try:
            record = await self.normalize(candidate, context)
        except EnrichmentError as e:
            if self.enabled:
                logger.warning(f"Enrichment failed for {candidate.title[:60]!r}, using fallback: {e}")
            metrics.normalizations_total.labels(source=candidate.source_id, mode="fallback").inc()
            return fallback_normalize(candidate, context)

        metrics.normalizations_total.labels(source=candidate.source_id, mode="ai").inc()
        return record
