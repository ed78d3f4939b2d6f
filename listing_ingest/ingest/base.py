"""Base fetcher interface and shared acquisition/extraction types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from listing_ingest.ingest.sources import SourceConfig


@dataclass
class RawDocument:
    """HTML obtained from a listing source."""

    source_id: str
    url: str
    html: str
    strategy: str  # "rendered" | "streaming"
    truncated: bool = False  # Streaming stopped at the byte cap
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class FieldStrategy:
    """One entry in a field's selector cascade.

    ``kind`` is "text" (element text) or "attr" (attribute value).
    """

    kind: str
    selector: str
    attribute: Optional[str] = None

    @classmethod
    def text(cls, selector: str) -> "FieldStrategy":
        return cls("text", selector)

    @classmethod
    def attr(cls, selector: str, attribute: str) -> "FieldStrategy":
        return cls("attr", selector, attribute)


class BaseFetcher(ABC):
    """Abstract base class for listing page fetchers."""

    strategy: str = "base"

    @abstractmethod
    async def fetch(self, source: "SourceConfig", city: str) -> RawDocument:
        """
        Fetch the search results page for a city.

        Args:
            source: Source configuration (URLs, selectors)
            city: City query

        Returns:
            RawDocument with the page HTML

        Raises:
            FetchError: If the page could not be acquired
        """

    async def close(self) -> None:
        """Release network resources."""
