"""Fingerprint store: natural-key lookups and inserts for canonical listings."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from listing_ingest.db.models import PropertyListing
from listing_ingest.errors import DuplicateRecordError
from listing_ingest.models import CanonicalPropertyRecord

logger = logging.getLogger(__name__)

TOP_CITIES = 10


class FingerprintStore(ABC):
    """Persisted listings keyed by (source name, source url)."""

    @abstractmethod
    async def exists(self, source_name: str, source_url: str) -> bool:
        """Whether a listing with this fingerprint is stored."""

    @abstractmethod
    async def insert(self, record: CanonicalPropertyRecord) -> dict[str, Any]:
        """
        Persist a record.

        Returns:
            Minimal projection of the stored row (id, title, price, location)

        Raises:
            DuplicateRecordError: The fingerprint is already stored
        """

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]:
        """Aggregate statistics over stored listings."""

    @abstractmethod
    async def delete_all(self) -> int:
        """Delete every stored listing and return how many were removed."""


def listing_from_record(record: CanonicalPropertyRecord) -> PropertyListing:
    return PropertyListing(
        title=record.title,
        description=record.description,
        price=record.price,
        price_type=record.price_type,
        city=record.location.city,
        area_name=record.location.area,
        full_address=record.location.full_address,
        property_type=record.property_type,
        bhk=record.bhk,
        area_size=record.area.size,
        area_unit=record.area.unit,
        amenities=list(record.amenities),
        images=list(record.images),
        tags=list(record.tags),
        source_name=record.source.name,
        source_url=record.source.url,
        scraped_at=record.source.scraped_at,
        contact_phone=record.contact.phone,
        contact_email=record.contact.email,
        contact_agent=record.contact.agent,
        status=record.status,
        ai_processed=record.ai_processed,
        confidence=record.confidence,
    )


def _is_fingerprint_violation(error: IntegrityError) -> bool:
    # Postgres names the constraint; SQLite lists the columns
    message = str(error.orig)
    return "uq_listing_source" in message or (
        "UNIQUE constraint failed" in message and "source_url" in message
    )


class SqlFingerprintStore(FingerprintStore):
    """Fingerprint store backed by the property_listings table."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_factory is None:
            from listing_ingest.db.session import AsyncSessionLocal

            session_factory = AsyncSessionLocal
        self.session_factory = session_factory

    async def exists(self, source_name: str, source_url: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PropertyListing.id)
                .where(
                    PropertyListing.source_name == source_name,
                    PropertyListing.source_url == source_url,
                )
                .limit(1)
            )
            return result.scalar_one_or_none() is not None

    async def insert(self, record: CanonicalPropertyRecord) -> dict[str, Any]:
        listing = listing_from_record(record)

        async with self.session_factory() as session:
            session.add(listing)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if _is_fingerprint_violation(e):
                    raise DuplicateRecordError(record.source.name, record.source.url) from e
                raise

            await session.refresh(listing)
            logger.debug(f"Stored listing {listing.id}: {listing.title[:60]}")
            return listing.to_summary()

    async def get_stats(self) -> dict[str, Any]:
        async with self.session_factory() as session:
            active = PropertyListing.status == "active"

            total_active = await session.scalar(
                select(func.count(PropertyListing.id)).where(active)
            )
            total = await session.scalar(select(func.count(PropertyListing.id)))
            avg_price = await session.scalar(select(func.avg(PropertyListing.price)).where(active))

            by_source = await session.execute(
                select(
                    PropertyListing.source_name,
                    func.count(PropertyListing.id),
                    func.avg(PropertyListing.price),
                    func.max(PropertyListing.scraped_at),
                )
                .where(active)
                .group_by(PropertyListing.source_name)
                .order_by(desc(func.count(PropertyListing.id)))
            )

            city_count = func.count(PropertyListing.id).label("count")
            by_city = await session.execute(
                select(PropertyListing.city, city_count, func.avg(PropertyListing.price))
                .where(active)
                .group_by(PropertyListing.city)
                .order_by(desc(city_count))
                .limit(TOP_CITIES)
            )

            by_type = await session.execute(
                select(
                    PropertyListing.property_type,
                    func.count(PropertyListing.id),
                    func.avg(PropertyListing.price),
                )
                .where(active)
                .group_by(PropertyListing.property_type)
            )

            return {
                "total": total or 0,
                "total_active": total_active or 0,
                "average_price": round(float(avg_price)) if avg_price is not None else 0,
                "by_source": [
                    {
                        "source": name,
                        "count": count,
                        "average_price": round(float(avg)) if avg is not None else 0,
                        "last_scraped": latest.isoformat() if latest else None,
                    }
                    for name, count, avg, latest in by_source.all()
                ],
                "top_cities": [
                    {
                        "city": city,
                        "count": count,
                        "average_price": round(float(avg)) if avg is not None else 0,
                    }
                    for city, count, avg in by_city.all()
                ],
                "by_property_type": [
                    {
                        "property_type": property_type,
                        "count": count,
                        "average_price": round(float(avg)) if avg is not None else 0,
                    }
                    for property_type, count, avg in by_type.all()
                ],
            }

    async def delete_all(self) -> int:
        async with self.session_factory() as session:
            result = await session.execute(delete(PropertyListing))
            await session.commit()
            deleted = result.rowcount or 0
            logger.info(f"Deleted {deleted} stored listings")
            return deleted
