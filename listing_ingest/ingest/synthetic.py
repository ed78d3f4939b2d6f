"""Synthetic listing generator used when a source yields nothing usable."""

import logging
import random

from listing_ingest.ingest.sources import SourceConfig
from listing_ingest.models import RawCandidateRecord

logger = logging.getLogger(__name__)


def generate_synthetic_records(
    source: SourceConfig,
    city: str,
    limit: int,
    rng: random.Random,
) -> list[RawCandidateRecord]:
    """
    Manufacture ``limit`` plausible candidates for a source.

    Pure apart from ``rng``: the same seed gives the same records, including
    their source links, so re-running a pinned-seed scrape reconciles to
    duplicates rather than new rows.

    Args:
        source: Source whose price band and fill pools apply
        city: City to place listings in
        limit: Number of records to produce
        rng: Random source (seed it for reproducible output)

    Returns:
        Exactly ``limit`` candidates flagged ``synthetic=True``
    """
    records: list[RawCandidateRecord] = []
    low, high = source.price_band_lakh
    min_size, max_size = source.area_size_range
    search_url = source.search_urls_for(city)[0] if source.search_urls else source.base_url

    for i in range(max(limit, 0)):
        area = rng.choice(source.area_names)
        kind = rng.choice(source.property_kinds)
        bhk = rng.choice(source.bhk_options)
        price_lakh = rng.randint(low, high)
        size = rng.randint(min_size, max_size)
        token = f"{rng.getrandbits(48):012x}"

        images = []
        if source.image_pool:
            images = rng.sample(list(source.image_pool), k=min(2, len(source.image_pool)))

        records.append(
            RawCandidateRecord(
                title=f"{bhk} BHK {kind} for Sale in {area} {city}",
                price_text=f"₹{price_lakh} Lakh",
                location_text=f"{area} {city}",
                description_text=(
                    f"{bhk} BHK {kind.lower()} of {size} sqft in {area} {city}. "
                    f"Close to transit and daily needs."
                ),
                images=images,
                source_link=f"{search_url}#listing-{i + 1}-{token}",
                source_id=source.id,
                city=city,
                synthetic=True,
            )
        )

    logger.info(f"[{source.name}] Generated {len(records)} synthetic records for {city}")
    return records
