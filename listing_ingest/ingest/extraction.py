"""Cascading selector extraction of candidate listings from raw HTML.

Every logical field (title, price, location, description) has an ordered
cascade of ``FieldStrategy`` entries, most site-specific first. The first
entry that yields non-empty content wins; later entries are never merged in.
Listing containers are found the same way, with a generic block-level scan as
the last resort.
"""

import logging
import re
from typing import Callable, Iterable, Optional
from urllib.parse import urljoin

from selectolax.parser import HTMLParser, Node

from listing_ingest.ingest.base import FieldStrategy, RawDocument
from listing_ingest.ingest.sources import SourceConfig
from listing_ingest.models import RawCandidateRecord

logger = logging.getLogger(__name__)

GENERIC_BLOCK_SELECTOR = "div, article, section"
GENERIC_MIN_TEXT = 100
GENERIC_MAX_TEXT = 1000
GENERIC_SCAN_FACTOR = 5  # Generic scan looks at limit * factor blocks at most

MIN_UNLABELLED_TEXT = 50  # Accept a card with no recognised fields if it has this much text

PRICE_ON_REQUEST = "Price on request"

CURRENCY_CUE = re.compile(r"₹|\brs\.?\s*\d|\binr\b", re.IGNORECASE)
CSS_URL = re.compile(r"url\((['\"]?)(.*?)\1\)", re.IGNORECASE)
WHITESPACE = re.compile(r"\s+")


def _clean_text(node: Node) -> str:
    return WHITESPACE.sub(" ", node.text(separator=" ", strip=True)).strip()


def _safe_css(node, selector: str) -> list[Node]:
    try:
        return node.css(selector)
    except Exception as e:
        logger.debug(f"Selector error: {selector[:50]} - {e}")
        return []


def _to_absolute(url: str, base_url: str) -> str:
    url = url.strip()
    if not url or url.startswith(("data:", "javascript:")):
        return ""
    return urljoin(base_url.rstrip("/") + "/", url)


def apply_strategies(node: Node, strategies: Iterable[FieldStrategy]) -> str:
    """
    Evaluate a field cascade against a listing element.

    Returns:
        Content from the first strategy that yields non-empty text, else ""
    """
    for strategy in strategies:
        for match in _safe_css(node, strategy.selector)[:1]:
            if strategy.kind == "attr":
                value = (match.attributes.get(strategy.attribute) or "").strip()
            else:
                value = _clean_text(match)
            if value:
                return value
    return ""


def extract_images(node: Node, base_url: str) -> list[str]:
    """Collect image URLs from img tags and inline background styles, deduplicated."""
    images: list[str] = []

    def add(raw: Optional[str]) -> None:
        url = _to_absolute(raw or "", base_url)
        if url and url not in images:
            images.append(url)

    for img in _safe_css(node, "img"):
        attrs = img.attributes
        src = attrs.get("src") or attrs.get("data-src") or attrs.get("data-original")
        if not src and attrs.get("srcset"):
            # Last srcset entry is the largest rendition
            src = attrs["srcset"].split(",")[-1].strip().split(" ")[0]
        add(src)

    for styled in _safe_css(node, "[style]"):
        style = styled.attributes.get("style") or ""
        if "background" in style.lower():
            for _, raw in CSS_URL.findall(style):
                add(raw)

    return images


def _usable_href(href: Optional[str]) -> Optional[str]:
    if href and not href.strip().lower().startswith("javascript:"):
        return href.strip()
    return None


def _link_from_anchor(node: Node, source: SourceConfig) -> Optional[str]:
    if node.tag == "a":
        href = _usable_href(node.attributes.get("href"))
        if href:
            return href
    for anchor in _safe_css(node, "a"):
        href = _usable_href(anchor.attributes.get("href"))
        if href:
            return href
    return None


def _link_from_data_attributes(node: Node, source: SourceConfig) -> Optional[str]:
    attrs = node.attributes
    for key in ("data-href", "data-url", "data-link", "data-propid"):
        value = (attrs.get(key) or "").strip()
        if not value:
            continue
        if value.isdigit() and source.detail_url_template:
            return source.detail_url_template.format(id=value)
        return value
    return None


def _link_from_ancestor(node: Node, source: SourceConfig) -> Optional[str]:
    parent = node.parent
    while parent is not None:
        if parent.tag == "a":
            href = _usable_href(parent.attributes.get("href"))
            if href:
                return href
        parent = parent.parent
    return None


LINK_STRATEGIES: tuple[Callable[[Node, SourceConfig], Optional[str]], ...] = (
    _link_from_anchor,
    _link_from_data_attributes,
    _link_from_ancestor,
)


def extract_link(node: Node, source: SourceConfig) -> Optional[str]:
    """First link strategy that yields a usable URL, made absolute."""
    for strategy in LINK_STRATEGIES:
        link = strategy(node, source)
        if link:
            return _to_absolute(link, source.base_url) or None
    return None


class ListingExtractor:
    """Recover candidate records from a listing search page."""

    def find_listing_elements(self, parser: HTMLParser, source: SourceConfig, limit: int) -> tuple[list[Node], str]:
        """
        Locate listing elements.

        Returns:
            Tuple of (elements, matched selector or "generic")
        """
        for i, selector in enumerate(source.container_selectors):
            elements = _safe_css(parser, selector)
            logger.debug(
                f"[{source.name}] Container selector {i + 1}/{len(source.container_selectors)} "
                f"{selector!r} found {len(elements)} elements"
            )
            if elements:
                return elements, selector

        logger.info(f"[{source.name}] No container selector matched, trying generic scan")
        return self._generic_scan(parser, source, limit), "generic"

    def _generic_scan(self, parser: HTMLParser, source: SourceConfig, limit: int) -> list[Node]:
        accepted: list[Node] = []
        blocks = _safe_css(parser, GENERIC_BLOCK_SELECTOR)[: limit * GENERIC_SCAN_FACTOR]

        for block in blocks:
            text = _clean_text(block)
            if not GENERIC_MIN_TEXT < len(text) < GENERIC_MAX_TEXT:
                continue
            lowered = text.lower()
            if any(k in lowered for k in source.generic_keywords) or CURRENCY_CUE.search(text):
                accepted.append(block)
                if len(accepted) >= limit:
                    break

        return accepted

    def extract(
        self,
        document: RawDocument,
        source: SourceConfig,
        limit: int,
        city: str = "",
    ) -> list[RawCandidateRecord]:
        """
        Extract up to ``limit`` candidate records. Never raises.

        Args:
            document: Raw HTML document
            source: Source whose selector cascades apply
            limit: Maximum number of candidates
            city: City the document was fetched for

        Returns:
            Candidate records in page order; empty when nothing looks like a listing
        """
        if limit <= 0 or not document.html:
            return []

        try:
            parser = HTMLParser(document.html)
            elements, matched = self.find_listing_elements(parser, source, limit)
            candidates: list[RawCandidateRecord] = []

            for element in elements:
                candidate = self._extract_one(element, source, city, len(candidates) + 1)
                if candidate is not None:
                    candidates.append(candidate)
                if len(candidates) >= limit:
                    break

            logger.info(
                f"[{source.name}] Extracted {len(candidates)} candidates "
                f"(selector: {matched}, with links: {sum(1 for c in candidates if c.source_link)})"
            )
            return candidates
        except Exception as e:
            logger.error(f"[{source.name}] Extraction failed on {document.url}: {e}")
            return []

    def _extract_one(
        self,
        element: Node,
        source: SourceConfig,
        city: str,
        index: int,
    ) -> Optional[RawCandidateRecord]:
        title = apply_strategies(element, source.title_strategies)
        price = apply_strategies(element, source.price_strategies)
        location = apply_strategies(element, source.location_strategies)

        if not (title or price or location) and len(_clean_text(element)) <= MIN_UNLABELLED_TEXT:
            return None

        description = apply_strategies(element, source.description_strategies) or None

        return RawCandidateRecord(
            title=title or source.placeholder_title(index),
            price_text=price or PRICE_ON_REQUEST,
            location_text=location,
            description_text=description,
            images=extract_images(element, source.base_url),
            source_link=extract_link(element, source),
            source_id=source.id,
            city=city,
        )


listing_extractor = ListingExtractor()
