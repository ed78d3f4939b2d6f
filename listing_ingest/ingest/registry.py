"""Fetcher registry keyed by acquisition strategy."""

import logging
from typing import Type

from listing_ingest.ingest.base import BaseFetcher
from listing_ingest.ingest.fetchers.headless import HeadlessFetcher
from listing_ingest.ingest.fetchers.static import StreamingFetcher

logger = logging.getLogger(__name__)


class FetcherRegistry:
    """Registry for acquisition strategies."""

    _fetchers: dict[str, Type[BaseFetcher]] = {
        "rendered": HeadlessFetcher,
        "streaming": StreamingFetcher,
    }

    _instances: dict[str, BaseFetcher] = {}

    @classmethod
    def get_fetcher(cls, strategy: str) -> BaseFetcher:
        """
        Get or create the fetcher for a strategy.

        Raises:
            ValueError: If strategy is not registered
        """
        if strategy not in cls._fetchers:
            raise ValueError(
                f"Unknown fetch strategy: {strategy}. Available: {list(cls._fetchers.keys())}"
            )

        # Lazy initialization
        if strategy not in cls._instances:
            cls._instances[strategy] = cls._fetchers[strategy]()
            logger.info(f"Initialized fetcher for strategy: {strategy}")

        return cls._instances[strategy]

    @classmethod
    def register_fetcher(cls, strategy: str, fetcher_class: Type[BaseFetcher]) -> None:
        cls._fetchers[strategy] = fetcher_class
        cls._instances.pop(strategy, None)
        logger.info(f"Registered fetcher for strategy: {strategy}")

    @classmethod
    async def cleanup(cls) -> None:
        """Close all fetcher instances."""
        for strategy, fetcher in cls._instances.items():
            try:
                await fetcher.close()
            except Exception as e:
                logger.error(f"Error closing fetcher for {strategy}: {e}")

        cls._instances.clear()
