"""Pipeline data records: candidates, canonical listings and batch results."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

PRICE_TYPES = ("sale", "rent")
PROPERTY_TYPES = ("apartment", "house", "villa", "plot", "commercial", "other")
AREA_UNITS = ("sqft", "sqm", "acres", "sqyd")
LISTING_STATUSES = ("active", "sold", "rented", "inactive", "pending")

SYNTHETIC_TAG = "synthetic"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RawCandidateRecord:
    """Unnormalized listing fields recovered from a source page.

    Lives only for the duration of one scrape run.
    """

    title: str
    price_text: str
    location_text: str
    description_text: Optional[str] = None
    images: list[str] = field(default_factory=list)
    source_link: Optional[str] = None
    source_id: str = ""
    city: str = ""
    synthetic: bool = False  # Manufactured fill, not a real listing

    def free_text(self) -> str:
        """All free-text fields joined, for keyword and regex rules."""
        parts = [self.title, self.price_text, self.location_text, self.description_text or ""]
        return " ".join(p for p in parts if p)


@dataclass
class NormalizationContext:
    """Provenance owned by the pipeline, never by the enrichment reply."""

    source_name: str
    source_url: str
    city: str
    scraped_at: datetime = field(default_factory=utcnow)


@dataclass
class Location:
    city: str
    area: Optional[str] = None
    full_address: Optional[str] = None


@dataclass
class AreaInfo:
    size: float = 0.0
    unit: str = "sqft"


@dataclass
class SourceInfo:
    name: str
    url: str
    scraped_at: datetime = field(default_factory=utcnow)


@dataclass
class ContactInfo:
    phone: Optional[str] = None
    email: Optional[str] = None
    agent: Optional[str] = None


@dataclass
class CanonicalPropertyRecord:
    """Schema-conforming listing, the unit the store persists."""

    title: str
    description: str
    price: int  # Whole rupees
    price_type: str  # "sale" | "rent"
    location: Location
    property_type: str
    area: AreaInfo
    source: SourceInfo
    bhk: Optional[int] = None
    amenities: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    contact: ContactInfo = field(default_factory=ContactInfo)
    status: str = "active"
    ai_processed: bool = False
    confidence: float = 0.5
    tags: list[str] = field(default_factory=list)

    @property
    def fingerprint(self) -> tuple[str, str]:
        """Natural key: (source name, source url)."""
        return (self.source.name, self.source.url)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BatchError:
    """One failed source or record in a scrape run."""

    source_or_record: str
    reason: str


@dataclass
class ScrapeBatchResult:
    """Aggregate outcome of one orchestrator run. Never persisted."""

    city: str = ""
    scraped: int = 0
    created: int = 0
    duplicates: int = 0
    errors: int = 0
    created_records: list[dict[str, Any]] = field(default_factory=list)
    error_entries: list[BatchError] = field(default_factory=list)
    message: str = ""
    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def add_error(self, source_or_record: str, reason: str) -> None:
        self.error_entries.append(BatchError(source_or_record, reason))
        self.errors += 1

    def merge(self, other: "ScrapeBatchResult") -> None:
        """Fold another result's counts and entries into this one."""
        self.scraped += other.scraped
        self.created += other.created
        self.duplicates += other.duplicates
        self.errors += other.errors
        self.created_records.extend(other.created_records)
        self.error_entries.extend(other.error_entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": self.message,
            "city": self.city,
            "stats": {
                "scraped": self.scraped,
                "created": self.created,
                "duplicates": self.duplicates,
                "errors": self.errors,
            },
            "properties": self.created_records,
            "errors": [asdict(e) for e in self.error_entries],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
