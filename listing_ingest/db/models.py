"""SQLAlchemy database models."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from listing_ingest.models import utcnow

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class PropertyListing(Base):
    """Canonical property listing. Never updated by the ingestion pipeline."""

    __tablename__ = "property_listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)  # Whole rupees
    price_type: Mapped[str] = mapped_column(String(8), default="sale", nullable=False)

    # Location
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    area_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    full_address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    property_type: Mapped[str] = mapped_column(String(16), default="other", nullable=False)
    bhk: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    area_size: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    area_unit: Mapped[str] = mapped_column(String(8), default="sqft", nullable=False)

    amenities: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    tags: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # Provenance; (source_name, source_url) is the natural key
    source_name: Mapped[str] = mapped_column(String(64), nullable=False)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Contact
    contact_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(String(254), nullable=True)
    contact_agent: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)
    ai_processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=0.5, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("source_name", "source_url", name="uq_listing_source"),
        CheckConstraint("price >= 0", name="ck_listing_price_non_negative"),
        CheckConstraint("confidence >= 0 AND confidence <= 1", name="ck_listing_confidence"),
        Index("ix_listing_city", "city"),
        Index("ix_listing_status", "status"),
    )

    def to_summary(self) -> dict:
        """Minimal projection returned from scrape runs."""
        return {
            "id": self.id,
            "title": self.title,
            "price": self.price,
            "location": {"city": self.city, "area": self.area_name},
        }
