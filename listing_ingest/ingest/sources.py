"""Listing source catalogue: URLs, selector cascades and synthetic fill pools."""

from dataclasses import dataclass, field
from typing import Optional

from listing_ingest.errors import UnknownSourceError
from listing_ingest.ingest.base import FieldStrategy

T = FieldStrategy.text


@dataclass(frozen=True)
class SourceConfig:
    """Everything the pipeline needs to know about one listing site."""

    id: str
    name: str  # Persisted as source.name
    strategy: str  # "rendered" (headless browser) or "streaming" (partial HTTP body)
    base_url: str
    search_urls: tuple[str, ...]  # Tried in order; "{city}" is the lowercased city
    container_selectors: tuple[str, ...]
    title_strategies: tuple[FieldStrategy, ...]
    price_strategies: tuple[FieldStrategy, ...]
    location_strategies: tuple[FieldStrategy, ...]
    description_strategies: tuple[FieldStrategy, ...] = ()
    detail_url_template: Optional[str] = None  # For numeric data-propid links
    generic_keywords: tuple[str, ...] = ("property", "sale", "rent")

    # Synthetic fill
    price_band_lakh: tuple[int, int] = (20, 120)
    area_names: tuple[str, ...] = ("Central", "North", "South", "East", "West")
    property_kinds: tuple[str, ...] = ("Apartment", "Flat", "Villa")
    bhk_options: tuple[int, ...] = (1, 2, 3)
    area_size_range: tuple[int, int] = (500, 1500)
    image_pool: tuple[str, ...] = field(default_factory=tuple)

    def search_urls_for(self, city: str) -> list[str]:
        slug = city.strip().lower().replace(" ", "-")
        return [url.format(city=slug) for url in self.search_urls]

    def placeholder_title(self, index: int) -> str:
        return f"{self.name} Property {index}"


HOUSING = SourceConfig(
    id="housing",
    name="Housing.com",
    strategy="rendered",
    base_url="https://housing.com",
    search_urls=(
        "https://housing.com/in/buy/searches/P36xt?city={city}",
        "https://housing.com/in/buy/{city}",
    ),
    container_selectors=('[data-testid="property-card"]', ".PropertyCard", ".property-card"),
    title_strategies=(T('[data-testid="property-title"]'), T(".property-title"), T("h3"), T("h2")),
    price_strategies=(T('[data-testid="price"]'), T(".property-price"), T(".price")),
    location_strategies=(T('[data-testid="location"]'), T(".property-location"), T(".location")),
    description_strategies=(T(".property-desc"), T(".description")),
    generic_keywords=("property", "sale", "rent", "bhk"),
    price_band_lakh=(20, 120),
    area_names=("Central", "North", "South", "East", "West", "Downtown", "Suburbs", "Premium"),
    property_kinds=("Apartment", "Flat", "Villa", "Penthouse", "Studio"),
    bhk_options=(1, 2, 3, 4, 5),
    area_size_range=(500, 1500),
    image_pool=(
        "https://images.unsplash.com/photo-1560448204-e02f11c3d0e2?w=400",
        "https://images.unsplash.com/photo-1564013799919-ab600027ffc6?w=400",
        "https://images.unsplash.com/photo-1568605114967-8130f3a36994?w=400",
        "https://images.unsplash.com/photo-1570129477492-45c003edd2be?w=400",
        "https://images.unsplash.com/photo-1582407947304-fd86f028f716?w=400",
    ),
)

OLX = SourceConfig(
    id="olx",
    name="OLX",
    strategy="streaming",
    base_url="https://www.olx.in",
    search_urls=("https://www.olx.in/items/q-property-{city}",),
    container_selectors=(
        '[data-aut-id="itemBox"]',
        ".EIR5N",
        "._1gDWt",
        '[data-cy="l-card"]',
        '[class*="item"]',
        '[class*="card"]',
        '[class*="property"]',
        "article",
        ".listing",
    ),
    title_strategies=(
        T('[data-aut-id="itemTitle"]'),
        T("h1"),
        T("h2"),
        T("h3"),
        T("h4"),
        T(".breakword"),
        T('[class*="title"]'),
        T('[class*="heading"]'),
    ),
    price_strategies=(
        T('[data-aut-id="itemPrice"]'),
        T(".notranslate"),
        T("._89yzn"),
        T('[class*="price"]'),
        T('[class*="amount"]'),
    ),
    location_strategies=(
        T('[data-aut-id="itemLocation"]'),
        T(".zLvFQ"),
        T("._1RkZP"),
        T('[class*="location"]'),
        T('[class*="address"]'),
    ),
    generic_keywords=("property", "sale", "rent"),
    price_band_lakh=(10, 60),
    area_names=("Central", "North", "South", "East", "West", "Downtown", "Suburbs"),
    property_kinds=("Apartment", "Flat", "House", "Villa"),
    bhk_options=(1, 2, 3, 4),
    area_size_range=(400, 1400),
    image_pool=(
        "https://images.unsplash.com/photo-1522708323590-d24dbb6b0267?w=400",
        "https://images.unsplash.com/photo-1502672260266-1c1ef2d93688?w=400",
        "https://images.unsplash.com/photo-1512917774080-9991f1c4c750?w=400",
        "https://images.unsplash.com/photo-1560518883-ce09059eeffa?w=400",
        "https://images.unsplash.com/photo-1571896349842-33c89424de2d?w=400",
    ),
)

MAGICBRICKS = SourceConfig(
    id="magicbricks",
    name="MagicBricks",
    strategy="streaming",
    base_url="https://www.magicbricks.com",
    search_urls=(
        "https://www.magicbricks.com/property-for-sale/residential-real-estate?cityName={city}",
    ),
    container_selectors=(
        ".mb-srp__card",
        ".mb-srp__list",
        ".SerpCard",
        '[class*="mb-srp"]',
        '[class*="card"]',
        '[class*="property"]',
        "article",
        ".listing",
    ),
    title_strategies=(
        T(".mb-srp__card--title"),
        T("h1"),
        T("h2"),
        T("h3"),
        T(".SerpCard__title"),
        T('[class*="title"]'),
        T('[class*="heading"]'),
    ),
    price_strategies=(
        T(".mb-srp__card__price"),
        T(".Price"),
        T(".SerpCard__price"),
        T('[class*="price"]'),
        T('[class*="amount"]'),
    ),
    location_strategies=(
        T(".mb-srp__card__ads--location"),
        T(".Location"),
        T(".SerpCard__location"),
        T('[class*="location"]'),
        T('[class*="address"]'),
    ),
    description_strategies=(T(".mb-srp__card__summary__list"), T(".Config")),
    detail_url_template="https://www.magicbricks.com/propertyDetails/{id}",
    generic_keywords=("property", "sale", "bhk"),
    price_band_lakh=(20, 100),
    area_names=("Premium", "Central", "Lakeside", "Metro", "Garden"),
    property_kinds=("Apartment", "Villa", "House", "Penthouse"),
    bhk_options=(1, 2, 3),
    area_size_range=(800, 2300),
    image_pool=(
        "https://images.unsplash.com/photo-1600596542815-ffad4c1539a9?w=400",
        "https://images.unsplash.com/photo-1600607687939-ce8a6c25118c?w=400",
        "https://images.unsplash.com/photo-1600566753190-17f0baa2a6c3?w=400",
        "https://images.unsplash.com/photo-1600607687920-4e2a09cf159d?w=400",
        "https://images.unsplash.com/photo-1600566752355-35792bedcfea?w=400",
    ),
)

SOURCES: dict[str, SourceConfig] = {s.id: s for s in (HOUSING, OLX, MAGICBRICKS)}


def get_source(source_id: str) -> SourceConfig:
    """
    Look up a source by id.

    Raises:
        UnknownSourceError: If the id is not in the catalogue
    """
    try:
        return SOURCES[source_id]
    except KeyError:
        raise UnknownSourceError(source_id, list(SOURCES)) from None


def enabled_sources(source_ids: list[str]) -> list[SourceConfig]:
    """Resolve configured source ids, preserving configured order."""
    return [get_source(source_id) for source_id in source_ids]
