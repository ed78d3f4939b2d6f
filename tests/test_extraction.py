"""Tests for cascading listing extraction."""

from listing_ingest.ingest.base import RawDocument
from listing_ingest.ingest.extraction import listing_extractor
from listing_ingest.ingest.sources import HOUSING, MAGICBRICKS, OLX

from tests.fakes import housing_page, magicbricks_page, olx_page


def _doc(source, html):
    return RawDocument(source_id=source.id, url=source.base_url, html=html, strategy=source.strategy)


def test_extracts_housing_cards():
    candidates = listing_extractor.extract(_doc(HOUSING, housing_page(3)), HOUSING, limit=10, city="Mumbai")

    assert len(candidates) == 3
    first = candidates[0]
    assert first.title == "2 BHK Apartment in Andheri West"
    assert first.price_text == "₹1.0 Cr"
    assert first.location_text == "Andheri West, Mumbai"
    assert first.source_link == "https://housing.com/in/buy/projects/hs-0"
    assert first.images == ["https://img.housing.com/hs-0.jpg"]
    assert first.source_id == "housing"
    assert first.city == "Mumbai"
    assert first.synthetic is False


def test_stops_at_limit():
    candidates = listing_extractor.extract(_doc(OLX, olx_page(8)), OLX, limit=3)

    assert len(candidates) == 3
    assert [c.source_link for c in candidates] == [
        "https://www.olx.in/item/olx-0",
        "https://www.olx.in/item/olx-1",
        "https://www.olx.in/item/olx-2",
    ]


def test_first_non_empty_strategy_wins():
    """An empty higher-priority match falls through; later matches are not merged in."""
    html = """
    <div data-testid="property-card">
      <span data-testid="property-title"></span>
      <h3>Fallback Title</h3>
      <h2>Ignored Heading</h2>
      <span class="price">₹80 Lakh</span>
      <span class="property-price">₹75 Lakh</span>
    </div>
    """
    [candidate] = listing_extractor.extract(_doc(HOUSING, html), HOUSING, limit=5)

    assert candidate.title == "Fallback Title"
    assert candidate.price_text == "₹75 Lakh"


def test_image_sources_are_collected_and_deduplicated():
    html = """
    <div data-testid="property-card">
      <h3>3 BHK Flat</h3>
      <img data-src="//cdn.example.com/lazy.jpg">
      <img srcset="/small.jpg 1x, /large.jpg 2x">
      <img src="https://cdn.example.com/lazy.jpg">
      <div style="background-image: url('https://img.example.com/bg.jpg')"></div>
      <img src="data:image/gif;base64,R0lGOD">
    </div>
    """
    [candidate] = listing_extractor.extract(_doc(HOUSING, html), HOUSING, limit=5)

    assert candidate.images == [
        "https://cdn.example.com/lazy.jpg",
        "https://housing.com/large.jpg",
        "https://img.example.com/bg.jpg",
    ]


def test_numeric_data_propid_uses_detail_template():
    candidates = listing_extractor.extract(_doc(MAGICBRICKS, magicbricks_page(2)), MAGICBRICKS, limit=5)

    assert [c.source_link for c in candidates] == [
        "https://www.magicbricks.com/propertyDetails/5000",
        "https://www.magicbricks.com/propertyDetails/5001",
    ]
    assert candidates[0].description_text == "1850 sqft, Gym, Swimming Pool"


def test_javascript_links_are_skipped():
    html = """
    <div class="mb-srp__card" data-url="/property/777">
      <a href="javascript:void(0)">View</a>
      <h2 class="mb-srp__card--title">2 BHK in Thane</h2>
    </div>
    """
    [candidate] = listing_extractor.extract(_doc(MAGICBRICKS, html), MAGICBRICKS, limit=5)

    assert candidate.source_link == "https://www.magicbricks.com/property/777"


def test_link_from_ancestor_anchor():
    html = """
    <a href="/in/buy/projects/wrapped-1">
      <div class="property-card"><h3>1 BHK Studio Flat</h3><span class="price">₹30 Lakh</span></div>
    </a>
    """
    [candidate] = listing_extractor.extract(_doc(HOUSING, html), HOUSING, limit=5)

    assert candidate.source_link == "https://housing.com/in/buy/projects/wrapped-1"


def test_missing_fields_get_placeholders():
    html = """
    <div data-testid="property-card">
      <p>Spacious corner unit with great ventilation, close to the metro line and schools.</p>
    </div>
    """
    [candidate] = listing_extractor.extract(_doc(HOUSING, html), HOUSING, limit=5)

    assert candidate.title == "Housing.com Property 1"
    assert candidate.price_text == "Price on request"
    assert candidate.location_text == ""
    assert candidate.source_link is None


def test_card_without_fields_or_text_is_skipped():
    html = """
    <div data-testid="property-card"><p>Ad</p></div>
    <div data-testid="property-card"><h3>2 BHK Flat</h3></div>
    """
    candidates = listing_extractor.extract(_doc(HOUSING, html), HOUSING, limit=5)

    assert [c.title for c in candidates] == ["2 BHK Flat"]


def test_generic_scan_when_no_container_matches():
    blurb = (
        "Well maintained two bedroom home on a high floor with covered parking, "
        "power backup and a children's play area. Asking ₹65 Lakh, negotiable."
    )
    html = f"<html><body><div><p>{blurb}</p></div><div><p>{blurb}</p></div><div><p>short</p></div></body></html>"

    candidates = listing_extractor.extract(_doc(OLX, html), OLX, limit=5)

    assert len(candidates) == 2
    assert candidates[0].title == "OLX Property 1"
    assert candidates[1].title == "OLX Property 2"


def test_unrelated_page_yields_nothing():
    html = "<html><body><nav>Home</nav><footer>Contact</footer></body></html>"

    assert listing_extractor.extract(_doc(OLX, html), OLX, limit=5) == []


def test_empty_document_yields_nothing():
    assert listing_extractor.extract(_doc(OLX, ""), OLX, limit=5) == []
    assert listing_extractor.extract(_doc(OLX, olx_page(2)), OLX, limit=0) == []
