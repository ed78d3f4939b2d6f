"""Exception taxonomy for the ingestion pipeline."""

from typing import Optional


class IngestError(Exception):
    """Base class for ingestion pipeline errors."""


class FetchError(IngestError):
    """Network, HTTP status or timeout failure while acquiring a document."""

    def __init__(self, source: str, url: Optional[str], reason: str):
        self.source = source
        self.url = url
        self.reason = reason
        super().__init__(
            f"Fetch failed for {source}"
            f"{f' ({url})' if url else ''}: {reason}"
        )


class EnrichmentError(IngestError):
    """The enrichment service failed or returned an unusable reply."""


class RecordValidationError(IngestError):
    """A canonical record violates the persisted schema."""


class DuplicateRecordError(IngestError):
    """A record with the same (source name, source url) is already stored."""

    def __init__(self, source_name: str, source_url: str):
        self.source_name = source_name
        self.source_url = source_url
        super().__init__(f"Listing already stored: {source_name} {source_url}")


class UnknownSourceError(IngestError):
    """Requested source id is not configured."""

    def __init__(self, source_id: str, available: list[str]):
        self.source_id = source_id
        self.available = available
        super().__init__(f"Unknown source: {source_id}. Available: {available}")
