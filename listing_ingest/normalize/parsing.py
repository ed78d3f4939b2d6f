"""Deterministic parsing rules shared by both normalizers."""

import re
from typing import Iterable, Optional

CRORE = 10_000_000
LAKH = 100_000
THOUSAND = 1_000

# Below this, a currency-prefixed figure with no unit is read as lakhs ("₹45" == 45 lakh)
LAKH_DEFAULT_CEILING = 1_000

NUMBER = re.compile(r"\d+(?:\.\d+)?")
CURRENCY_PREFIX = re.compile(r"(?:₹|\brs\b\.?|\binr\b|\$)\s*\d")
SHORT_SUFFIX = re.compile(r"^\s*(cr|l|k)(?![a-z])")
CRORE_MARKER = re.compile(r"(?<![a-z])(?:cr|crores?)(?![a-z])")
LAKH_MARKER = re.compile(r"(?<![a-z])(?:lacs?|lakhs?)(?![a-z])")
THOUSAND_MARKER = re.compile(r"(?<![a-z])thousand(?![a-z])")

BHK = re.compile(r"(\d+)\s*(?:bhk|rk|bedrooms?|beds?)(?![a-z])", re.IGNORECASE)

AREA = re.compile(
    r"(\d[\d,]*(?:\.\d+)?)\s*"
    r"(sq\.?\s*ft|sqft|square\s*f(?:ee|oo)t|sq\.?\s*m(?:tr)?|sqm|square\s*met(?:er|re)s?"
    r"|acres?|sq\.?\s*yd|sqyd|square\s*yards?|gaj)(?![a-z])",
    re.IGNORECASE,
)

RENT_CUES = re.compile(
    r"\b(?:rent|rental|lease)\b|/\s*(?:month|mo)\b|per\s+month|\bpm\b|\bmonthly\b",
    re.IGNORECASE,
)

# Checked in order; first keyword hit wins
PROPERTY_TYPE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("villa", ("villa",)),
    ("plot", ("plot", "land")),
    ("commercial", ("commercial", "office", "shop", "showroom", "warehouse")),
    ("house", ("house", "bungalow", "independent", "row house")),
    ("apartment", ("apartment", "flat", "penthouse", "studio", "condo")),
)

AMENITY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("parking", "Parking"),
    ("gym", "Gym"),
    ("swimming pool", "Swimming Pool"),
    ("pool", "Swimming Pool"),
    ("security", "Security"),
    ("lift", "Lift"),
    ("elevator", "Lift"),
    ("power backup", "Power Backup"),
    ("garden", "Garden"),
    ("clubhouse", "Clubhouse"),
    ("club house", "Clubhouse"),
    ("play area", "Play Area"),
)


def parse_price(text: Optional[str]) -> Optional[int]:
    """
    Convert an Indian price string to whole rupees.

    Examples:
        "₹1.2 Cr" -> 12000000
        "50 lakhs" -> 5000000
        "25L" -> 2500000
        "5000000" -> 5000000

    Returns:
        Price in rupees, or None if the text has no number
    """
    if not text:
        return None

    lowered = text.lower().replace(",", "")
    match = NUMBER.search(lowered)
    if not match:
        return None

    value = float(match.group())
    rest = lowered[match.end():]

    suffix = SHORT_SUFFIX.match(rest)
    if suffix:
        multiplier = {"cr": CRORE, "l": LAKH, "k": THOUSAND}[suffix.group(1)]
    elif CRORE_MARKER.search(rest):
        multiplier = CRORE
    elif LAKH_MARKER.search(rest):
        multiplier = LAKH
    elif THOUSAND_MARKER.search(rest):
        multiplier = THOUSAND
    elif CURRENCY_PREFIX.search(lowered) and value < LAKH_DEFAULT_CEILING:
        multiplier = LAKH
    else:
        multiplier = 1

    return int(round(value * multiplier))


def parse_bhk(text: Optional[str]) -> Optional[int]:
    """First integer directly followed by a bedroom marker ("2 BHK", "3 bedrooms")."""
    if not text:
        return None
    match = BHK.search(text)
    return int(match.group(1)) if match else None


def parse_area(text: Optional[str]) -> Optional[tuple[float, str]]:
    """
    Find a built-up area figure.

    Returns:
        Tuple of (size, unit) with unit one of sqft, sqm, acres, sqyd; None if absent
    """
    if not text:
        return None
    match = AREA.search(text)
    if not match:
        return None

    size = float(match.group(1).replace(",", ""))
    unit_text = re.sub(r"[\s.]", "", match.group(2).lower())

    if unit_text.startswith("acre"):
        unit = "acres"
    elif "yd" in unit_text or "yard" in unit_text or unit_text == "gaj":
        unit = "sqyd"
    elif "ft" in unit_text or "fe" in unit_text or "foot" in unit_text:
        unit = "sqft"
    else:
        unit = "sqm"

    return size, unit


def infer_price_type(text: Optional[str]) -> str:
    """'rent' when the text carries a rent cue, otherwise 'sale'."""
    if text and RENT_CUES.search(text):
        return "rent"
    return "sale"


def infer_property_type(text: Optional[str]) -> str:
    if not text:
        return "other"
    lowered = text.lower()
    for property_type, keywords in PROPERTY_TYPE_KEYWORDS:
        if any(re.search(rf"\b{re.escape(k)}s?\b", lowered) for k in keywords):
            return property_type
    return "other"


def extract_amenities(text: Optional[str]) -> list[str]:
    """Amenity names mentioned in free text, deduplicated in first-seen order."""
    if not text:
        return []
    lowered = text.lower()
    return dedupe(name for keyword, name in AMENITY_KEYWORDS if keyword in lowered)


def dedupe(values: Iterable[Optional[str]]) -> list[str]:
    """Drop empty values and exact repeats, keeping first occurrence order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if not value:
            continue
        value = value.strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result
