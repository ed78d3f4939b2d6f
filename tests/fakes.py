"""Test doubles and canned listing pages."""

from typing import Any

from listing_ingest.db.store import FingerprintStore
from listing_ingest.errors import DuplicateRecordError
from listing_ingest.ingest.base import BaseFetcher, RawDocument
from listing_ingest.models import CanonicalPropertyRecord


class InMemoryFingerprintStore(FingerprintStore):
    """Dict-backed store with the same contract as the SQL store."""

    def __init__(self):
        self.rows: dict[tuple[str, str], CanonicalPropertyRecord] = {}
        self._next_id = 1

    async def exists(self, source_name: str, source_url: str) -> bool:
        return (source_name, source_url) in self.rows

    async def insert(self, record: CanonicalPropertyRecord) -> dict[str, Any]:
        if record.fingerprint in self.rows:
            raise DuplicateRecordError(*record.fingerprint)
        self.rows[record.fingerprint] = record
        row_id = self._next_id
        self._next_id += 1
        return {
            "id": row_id,
            "title": record.title,
            "price": record.price,
            "location": {"city": record.location.city, "area": record.location.area},
        }

    async def get_stats(self) -> dict[str, Any]:
        return {"total": len(self.rows), "total_active": len(self.rows)}

    async def delete_all(self) -> int:
        deleted = len(self.rows)
        self.rows.clear()
        return deleted


class PageFetcher(BaseFetcher):
    """Serves canned HTML per source id; raises a configured error instead if set."""

    strategy = "test"

    def __init__(self, pages: dict[str, str], errors: dict[str, Exception] | None = None):
        self.pages = pages
        self.errors = errors or {}
        self.calls: list[str] = []

    async def fetch(self, source, city):
        self.calls.append(source.id)
        if source.id in self.errors:
            raise self.errors[source.id]
        return RawDocument(
            source_id=source.id,
            url=source.search_urls_for(city)[0],
            html=self.pages.get(source.id, "<html><body></body></html>"),
            strategy=source.strategy,
        )


def housing_page(count: int, prefix: str = "hs") -> str:
    cards = "".join(
        f"""
        <div data-testid="property-card">
          <a href="/in/buy/projects/{prefix}-{i}">
            <h3 data-testid="property-title">{i + 2} BHK Apartment in Andheri West</h3>
          </a>
          <div data-testid="price">₹1.{i} Cr</div>
          <div data-testid="location">Andheri West, Mumbai</div>
          <img src="https://img.housing.com/{prefix}-{i}.jpg">
        </div>"""
        for i in range(count)
    )
    return f"<html><body><div class='results'>{cards}</div></body></html>"


def olx_page(count: int, prefix: str = "olx") -> str:
    cards = "".join(
        f"""
        <li data-aut-id="itemBox">
          <a href="/item/{prefix}-{i}">
            <span data-aut-id="itemPrice">₹ {40 + i} Lakh</span>
            <span data-aut-id="itemTitle">{i + 1} BHK Flat for sale near station</span>
            <span data-aut-id="itemLocation">Borivali, Mumbai</span>
          </a>
        </li>"""
        for i in range(count)
    )
    return f"<html><body><ul>{cards}</ul></body></html>"


def magicbricks_page(count: int, start_id: int = 5000) -> str:
    cards = "".join(
        f"""
        <div class="mb-srp__card" data-propid="{start_id + i}">
          <h2 class="mb-srp__card--title">3 BHK Villa for Sale in Powai</h2>
          <div class="mb-srp__card__price">₹{2 + i} Cr</div>
          <div class="mb-srp__card__ads--location">Powai, Mumbai</div>
          <div class="mb-srp__card__summary__list">1850 sqft, Gym, Swimming Pool</div>
        </div>"""
        for i in range(count)
    )
    return f"<html><body>{cards}</body></html>"

