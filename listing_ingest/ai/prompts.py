"""Prompt templates and response schema for listing enrichment."""

from typing import Optional

from pydantic import BaseModel

from listing_ingest.models import AREA_UNITS, LISTING_STATUSES, PRICE_TYPES, PROPERTY_TYPES

ENRICHMENT_SYSTEM_PROMPT = """You normalize Indian real-estate listings scraped from property portals.

Rules:
- price: bare integer rupees. Convert units: 1 crore = 10000000, 1 lakh = 100000, 1 thousand = 1000.
  "₹1.2 Cr" is 12000000. "45 Lakh" is 4500000.
- price_type: "rent" only for monthly rents, otherwise "sale".
- bhk: integer bedroom count ("2 BHK" is 2). Use null when not stated.
- area: prefer square feet. Use null size when not stated; do not guess.
- amenities: short title-cased names, no duplicates.
- confidence: 0.1 to 1.0, how complete and trustworthy the listing text is.
- Never invent contact details."""


class ListingEnrichmentPrompt(BaseModel):
    """Prompt schema for listing normalization."""

    title: str
    price_text: str
    location_text: str
    city: str
    description: Optional[str] = None

    def to_prompt(self) -> str:
        """Convert to prompt text."""
        parts = [
            f"Title: {self.title}",
            f"Price: {self.price_text}",
            f"Location: {self.location_text or 'not stated'}",
            f"City searched: {self.city}",
        ]
        if self.description:
            parts.append(f"Description: {self.description}")

        parts.append("\nNormalize this listing.")
        return "\n".join(parts)


# Response schema for structured output
LISTING_ENRICHMENT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "price": {"type": "integer", "description": "Whole rupees"},
        "price_type": {"type": "string", "enum": list(PRICE_TYPES)},
        "location": {
            "type": "object",
            "properties": {
                "city": {"type": "string"},
                "area": {"type": "string"},
                "full_address": {"type": "string"},
            },
        },
        "property_type": {"type": "string", "enum": list(PROPERTY_TYPES)},
        "bhk": {"type": ["integer", "null"]},
        "area": {
            "type": "object",
            "properties": {
                "size": {"type": ["number", "null"]},
                "unit": {"type": "string", "enum": list(AREA_UNITS)},
            },
        },
        "amenities": {"type": "array", "items": {"type": "string"}},
        "contact": {
            "type": "object",
            "properties": {
                "phone": {"type": "string"},
                "email": {"type": "string"},
                "agent": {"type": "string"},
            },
        },
        "status": {"type": "string", "enum": list(LISTING_STATUSES)},
        "confidence": {"type": "number", "minimum": 0.1, "maximum": 1.0},
    },
    "required": ["title", "price", "price_type", "property_type", "confidence"],
}
