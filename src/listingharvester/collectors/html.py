"""Search results page parsing for the HTTP path.

Parsing is pure: it takes the page HTML and returns a PageResult, so it
can be tested without any network access. Extraction tiers, in order:

1. Empty-results marker: the page is reported as ``no_results``.
2. JSON-LD blocks (ItemList, arrays, @graph): authoritative when present.
3. Listing cards located through ordered selectors, with a per-source
   card extractor.
4. Every link shaped like a detail URL, using the surrounding container
   text.
"""

import json
import logging
import re
from typing import Any, Callable, Iterator, Optional

from bs4 import BeautifulSoup, Tag

from ..models.listing import RawListing, SearchFilters
from ..models.source import SourceConfig, SourceId
from .base import PageResult
from .matchers import (
    first_element,
    first_match,
    first_text,
    has_next_page,
    has_no_results,
    matchers_for,
)
from .normalize import ROOM_AFTER_PATTERN, SIZE_PATTERN, build_listing, clean_text

logger = logging.getLogger(__name__)

CardFields = dict[str, Any]
CardExtractor = Callable[[Tag, SourceConfig], CardFields]

# Tried after the source's own card selectors
GENERIC_CARD_SELECTORS = (
    'article[class*="listing"]',
    'article[class*="property"]',
    "[data-listing-id]",
    ".listing-card",
    ".search-result-item",
    'div[class*="PropertyCard"]',
    'div[class*="ListingCard"]',
)

CONTAINER_CLASS_HINTS = ("card", "listing", "property", "search-result")

JSON_LD_LISTING_TYPES = {
    "Product",
    "Residence",
    "RealEstateListing",
    "Apartment",
    "House",
    "SingleFamilyResidence",
    "Accommodation",
}
JSON_LD_GENERIC_TYPES = {
    "Product",
    "RealEstateListing",
    "Offer",
    "Thing",
    "Residence",
    "Accommodation",
}
JSON_LD_ID_PATTERN = re.compile(r"/d/(\d+)|/details/(\d+)|/(\d+)(?:[/?#]|$)")

PER_AREA_TEXT_PATTERN = re.compile(
    r"€\s*[\d][\d.,\s]*?\s*/\s*(?:sq\.?\s?m\.?|m²|m2|τ\.?μ\.?)", re.IGNORECASE
)
PRICE_TEXT_PATTERNS = (
    re.compile(r"€\s*\d[\d.,]*"),
    re.compile(r"\d[\d.,]*\s*€"),
)
BADGE_PATTERN = re.compile(r"\b(?:VIP|NEW|REDUCED)\b", re.IGNORECASE)
FLOOR_TEXT_PATTERN = re.compile(
    r"\d+(?:st|nd|rd|th)\s*floor|(?:floor|όροφος)[:\s]*\d+|ground\s*floor|ισόγειο|υπόγειο",
    re.IGNORECASE,
)
BACKGROUND_IMAGE_PATTERN = re.compile(r"background-image:\s*url\(['\"]?([^'\")\s]+)['\"]?\)")
SKIPPED_LINK_MARKERS = ("/search", "/filter")

# Sources whose search URL ignores price filters
CLIENT_SIDE_PRICE_FILTER = {SourceId.XE_GR}


def extract_listing_id(href: Optional[str], config: SourceConfig) -> Optional[str]:
    """Pull the listing id out of a detail URL using the source's pattern."""
    if not href:
        return None
    match = re.search(config.detail_url_pattern, href)
    if not match:
        return None
    return next((g for g in match.groups() if g), None)


def _closest(tag: Tag, predicate: Callable[[Tag], bool]) -> Optional[Tag]:
    for parent in tag.parents:
        if not isinstance(parent, Tag) or parent.name in ("body", "html", "[document]"):
            return None
        if predicate(parent):
            return parent
    return None


def _looks_like_container(tag: Tag) -> bool:
    if tag.name == "article":
        return True
    classes = " ".join(tag.get("class") or []).lower()
    return any(hint in classes for hint in CONTAINER_CLASS_HINTS)


def _link_container(link: Tag) -> Tag:
    container = _closest(link, _looks_like_container)
    if container is not None:
        return container
    parent = link.parent
    if parent is not None and parent.parent is not None and parent.parent.name not in ("body", "[document]"):
        return parent.parent
    return parent or link


def _card_images(card: Tag) -> list[str]:
    images = []
    for el in card.find_all(["img", "source"]):
        src = (
            el.get("src")
            or el.get("data-src")
            or el.get("data-lazy-src")
            or el.get("data-original")
        )
        if not src and el.get("srcset"):
            src = el["srcset"].split(",")[0].strip().split(" ")[0]
        if src:
            images.append(src)
    for el in card.select('[style*="background-image"]'):
        match = BACKGROUND_IMAGE_PATTERN.search(el.get("style", ""))
        if match:
            images.append(match.group(1))
    return images


def price_text_from(text: str) -> Optional[str]:
    """Find the price fragment in free card text; per-m² quotes win."""
    per_area = PER_AREA_TEXT_PATTERN.search(text)
    if per_area:
        return per_area.group(0)
    for pattern in PRICE_TEXT_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return None


def size_text_from(text: str) -> Optional[str]:
    match = SIZE_PATTERN.search(text)
    return match.group(0) if match else None


def bedrooms_text_from(text: str) -> Optional[str]:
    match = ROOM_AFTER_PATTERN.search(text)
    return match.group(0) if match else None


def _generic_card_fields(card: Tag, config: SourceConfig) -> CardFields:
    hints = config.hints
    if card.name == "a" and card.get("href"):
        link = card
    else:
        link = first_element(card, hints.listing_link) or card.find("a", href=True)

    href = (link.get("href") if link is not None else None) or card.get("data-targeturl")
    listing_id = (
        card.get("data-listing-id")
        or card.get("data-property-id")
        or extract_listing_id(href, config)
    )

    text = card.get_text(" ", strip=True)
    title = first_text(card, hints.title) or first_text(card, ("h2", "h3", "h4"))
    if not title and link is not None:
        title = link.get("title")

    return {
        "id": listing_id,
        "url": href,
        "title": title,
        "price": first_text(card, hints.price) or price_text_from(text),
        "location": first_text(card, hints.location),
        "size": first_text(card, hints.size) or size_text_from(text),
        "bedrooms": first_text(card, hints.bedrooms) or bedrooms_text_from(text),
        "bathrooms": first_text(card, hints.bathrooms),
        "property_type": first_text(card, hints.property_type),
        "agency": first_text(card, hints.agency_name),
        "images": _card_images(card),
    }


TOSPITIMOU_TYPE_SLUGS = (
    "apartment-flat",
    "detached-house",
    "maisonette",
    "apartment",
    "studio",
    "house",
    "loft",
    "villa",
    "penthouse",
    "building",
    "land",
    "plot",
)


def split_tospitimou_slug(href: str) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """Split "/sale-apartment-flat-Kolonaki/property/123" into its parts.

    Returns:
        (transaction, property type text, location), each None if absent
    """
    match = re.search(r"/(sale|rent)-([^/]+)/property/", href)
    if not match:
        return None, None, None
    transaction, rest = match.group(1), match.group(2)
    for slug in TOSPITIMOU_TYPE_SLUGS:
        if rest.lower().startswith(slug + "-"):
            location = rest[len(slug) + 1:]
            return transaction, slug.replace("-", " "), clean_text(location.replace("-", " "))
    kind, _, location = rest.partition("-")
    return transaction, kind, clean_text(location.replace("-", " ")) if location else None


def finish_tospitimou_fields(fields: CardFields) -> CardFields:
    """Fill type, location and transaction from the detail URL slug.

    Applied to HTML card fields and to browser payloads alike.
    """
    transaction, type_text, location = split_tospitimou_slug(fields.get("url") or "")
    fields["property_type"] = fields.get("property_type") or type_text
    fields["location"] = fields.get("location") or location
    fields["transaction"] = fields.get("transaction") or transaction
    if fields.get("title"):
        fields["title"] = clean_text(BADGE_PATTERN.sub("", fields["title"]))
    return fields


def _tospitimou_card_fields(card: Tag, config: SourceConfig) -> CardFields:
    target = clean_text(card.get("data-targeturl"))
    if not target:
        link = first_element(card, config.hints.listing_link)
        target = clean_text(link.get("href")) if link is not None else None
    row_id = (card.get("id") or "").replace("result-row_", "")

    text = card.get_text(" ", strip=True)
    floor = FLOOR_TEXT_PATTERN.search(text)

    # Cards quote a per-m² rate; the shared normalizer derives the total
    fields = {
        "id": row_id or extract_listing_id(target, config),
        "url": target,
        "title": first_text(card, (".searchResultsH2 a", "h2 a", "h2")),
        "price": price_text_from(text),
        "size": size_text_from(text),
        "bedrooms": bedrooms_text_from(text),
        "location": first_text(card, ('[class*="location"]', '[class*="address"]', '[class*="area"]')),
        "transaction": "rent" if "/month" in text or "ανά μήνα" in text else None,
        "floor": floor.group(0) if floor else None,
        "images": _card_images(card),
    }
    return finish_tospitimou_fields(fields)


CARD_EXTRACTORS: dict[SourceId, CardExtractor] = {
    SourceId.TOSPITIMOU: _tospitimou_card_fields,
}

# Post-processing shared with browser payloads
PAYLOAD_FINISHERS: dict[SourceId, Callable[[CardFields], CardFields]] = {
    SourceId.TOSPITIMOU: finish_tospitimou_fields,
}


def _json_ld_items(data: Any) -> Iterator[dict[str, Any]]:
    if isinstance(data, list):
        for entry in data:
            yield from _json_ld_items(entry)
        return
    if not isinstance(data, dict):
        return

    if "@graph" in data:
        yield from _json_ld_items(data["@graph"])
        return

    types = _json_ld_types(data)
    if "ItemList" in types:
        yield from _json_ld_items(data.get("itemListElement") or [])
    elif "ListItem" in types:
        yield from _json_ld_items(data.get("item"))
    elif "Offer" in types and isinstance(data.get("itemOffered"), dict):
        item = dict(data["itemOffered"])
        item.setdefault("offers", {k: v for k, v in data.items() if k != "itemOffered"})
        item.setdefault("url", data.get("url"))
        yield item
    else:
        yield data


def _json_ld_types(item: dict[str, Any]) -> set[str]:
    value = item.get("@type") or []
    return {value} if isinstance(value, str) else {str(v) for v in value}


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _quantity(value: Any) -> Any:
    """Unwrap a schema.org QuantitativeValue to its plain value."""
    value = _first(value)
    if isinstance(value, dict):
        return value.get("value")
    return value


def _json_ld_images(value: Any) -> list[str]:
    if not value:
        return []
    if not isinstance(value, list):
        value = [value]
    images = []
    for entry in value:
        if isinstance(entry, dict):
            entry = entry.get("url") or entry.get("contentUrl")
        if isinstance(entry, str):
            images.append(entry)
    return images


def _json_ld_fields(item: dict[str, Any], config: SourceConfig) -> Optional[CardFields]:
    url = item.get("url") or item.get("@id")
    if not isinstance(url, str) or not url:
        return None

    listing_id = extract_listing_id(url, config)
    if not listing_id:
        match = JSON_LD_ID_PATTERN.search(url)
        listing_id = next((g for g in match.groups() if g), None) if match else None

    offers = _first(item.get("offers")) or {}
    geo = item.get("geo") or {}
    address = _first(item.get("address")) or {}
    if isinstance(address, str):
        address = {"streetAddress": address}
    elif not isinstance(address, dict):
        address = {}

    fields: CardFields = {
        "id": listing_id,
        "url": url,
        "title": item.get("name"),
        "location": address.get("streetAddress"),
        "area": address.get("addressLocality"),
        "municipality": address.get("addressRegion"),
        "postal_code": address.get("postalCode"),
        "latitude": geo.get("latitude") if isinstance(geo, dict) else None,
        "longitude": geo.get("longitude") if isinstance(geo, dict) else None,
        "images": _json_ld_images(item.get("image")),
    }

    price = offers.get("price") if isinstance(offers, dict) else None
    if isinstance(price, (int, float)) or (isinstance(price, str) and re.fullmatch(r"\d+(?:\.\d+)?", price)):
        fields["price_value"] = price
    elif price:
        fields["price"] = str(price)

    floor_size = item.get("floorSize")
    if isinstance(floor_size, dict) and floor_size.get("value") is not None:
        fields["size"] = str(floor_size["value"])
    elif floor_size is not None:
        fields["size"] = str(floor_size)

    rooms = _quantity(item.get("numberOfBedrooms") or item.get("numberOfRooms"))
    if rooms is not None:
        fields["bedrooms"] = str(rooms)
    bathrooms = _quantity(item.get("numberOfBathroomsTotal"))
    if bathrooms is not None:
        fields["bathrooms"] = str(bathrooms)

    specific = _json_ld_types(item) - JSON_LD_GENERIC_TYPES
    fields["property_type"] = item.get("category") or next(iter(sorted(specific)), None)
    return fields


def extract_json_ld(
    soup: BeautifulSoup, config: SourceConfig, filters: SearchFilters
) -> list[RawListing]:
    """Build listings from schema.org JSON-LD blocks on the page."""
    listings: list[RawListing] = []
    for script in soup.find_all("script", type="application/ld+json"):
        content = script.string or script.get_text()
        if not content or not content.strip():
            continue
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.debug(f"Skipping malformed JSON-LD block: {e}")
            continue

        for item in _json_ld_items(data):
            if not _json_ld_types(item) & JSON_LD_LISTING_TYPES:
                continue
            try:
                fields = _json_ld_fields(item, config)
                if fields is None:
                    continue
                raw = dict(item)
                raw["extraction"] = "json_ld"
                listing = build_listing(
                    fields,
                    base_url=config.base_url,
                    transaction_type=filters.transaction_type,
                    raw_data=raw,
                )
            except Exception as e:
                logger.warning(f"Error parsing JSON-LD item on {config.id.value}: {e}")
                continue
            if listing is not None:
                listings.append(listing)
    return listings


def apply_price_filter(listings: list[RawListing], filters: SearchFilters) -> list[RawListing]:
    """Drop listings outside the filter's price range; unpriced ones are kept."""
    kept = []
    for listing in listings:
        if listing.price is not None:
            if filters.min_price and listing.price < filters.min_price:
                continue
            if filters.max_price and listing.price > filters.max_price:
                continue
        kept.append(listing)
    return kept


def extract_cards(
    soup: BeautifulSoup, config: SourceConfig, filters: SearchFilters
) -> list[RawListing]:
    """Build listings from listing cards found by ordered selectors."""
    cards = first_match(soup, matchers_for(config.hints.listing_card + GENERIC_CARD_SELECTORS))
    if not cards:
        return []

    extractor = CARD_EXTRACTORS.get(config.id, _generic_card_fields)
    logger.debug(f"{config.id.value}: {len(cards)} cards")

    listings = []
    for card in cards:
        try:
            fields = extractor(card, config)
            listing = build_listing(
                fields,
                base_url=config.base_url,
                transaction_type=filters.transaction_type,
                raw_data={"extraction": "card"},
            )
        except Exception as e:
            logger.warning(f"Error parsing card on {config.id.value}: {e}")
            continue
        if listing is not None:
            listings.append(listing)
    return listings


def extract_detail_links(
    soup: BeautifulSoup, config: SourceConfig, filters: SearchFilters
) -> list[RawListing]:
    """Build listings from every detail-shaped link on the page."""
    listings = []
    seen: set[str] = set()

    for link in soup.find_all("a", href=True):
        href = link["href"]
        if any(marker in href for marker in SKIPPED_LINK_MARKERS):
            continue
        listing_id = extract_listing_id(href, config)
        if not listing_id or listing_id in seen:
            continue
        seen.add(listing_id)

        try:
            container = _link_container(link)
            text = container.get_text(" ", strip=True)
            title = (
                first_text(container, ("h1", "h2", "h3", "h4", '[class*="title"]'))
                or link.get("title")
                or link.get_text(" ", strip=True)
            )
            fields = {
                "id": listing_id,
                "url": href,
                "title": title,
                "price": price_text_from(text),
                "size": size_text_from(text),
                "bedrooms": bedrooms_text_from(text),
                "location": first_text(
                    container, ('[class*="location"]', '[class*="address"]', '[class*="area"]')
                ),
                "images": _card_images(container),
            }
            listing = build_listing(
                fields,
                base_url=config.base_url,
                transaction_type=filters.transaction_type,
                raw_data={"extraction": "link", "text": text[:500]},
            )
        except Exception as e:
            logger.warning(f"Error parsing link {href} on {config.id.value}: {e}")
            continue
        if listing is not None:
            listings.append(listing)

    return listings


def _dedupe(listings: list[RawListing]) -> list[RawListing]:
    seen: set[str] = set()
    unique = []
    for listing in listings:
        if listing.source_listing_id not in seen:
            seen.add(listing.source_listing_id)
            unique.append(listing)
    return unique


def parse_search_page(
    html: str,
    config: SourceConfig,
    filters: SearchFilters,
    url: str = "",
) -> PageResult:
    """Parse one search results page.

    Args:
        html: Page markup
        config: Source configuration
        filters: Search criteria (transaction type, client-side price range)
        url: The URL the markup came from, for reporting

    Returns:
        PageResult with listings in page order, deduplicated by id
    """
    soup = BeautifulSoup(html, "html.parser")

    if has_no_results(soup, config.hints.no_results):
        logger.info(f"{config.id.value}: no results marker on {url or 'page'}")
        return PageResult(no_results=True, url=url)

    listings = extract_json_ld(soup, config, filters)
    if listings:
        logger.debug(f"{config.id.value}: {len(listings)} listings from JSON-LD")
        if config.id in CLIENT_SIDE_PRICE_FILTER:
            listings = apply_price_filter(listings, filters)
    else:
        listings = extract_cards(soup, config, filters)
        if not listings:
            listings = extract_detail_links(soup, config, filters)
            if listings:
                logger.debug(f"{config.id.value}: {len(listings)} listings from detail links")

    return PageResult(
        listings=_dedupe(listings),
        has_next_page=has_next_page(soup, config.hints.next_page),
        url=url,
    )
