"""Static configuration for the supported Greek listing portals.

Configs are built once at import time and never mutate. Other components
reference a source only through its ``SourceId``; ``get_source_config``
is the single lookup and returns ``None`` for unknown ids so batch callers
can skip a source instead of aborting the whole run.

Portal notes:
    - Spitogatos: React SPA, listing cards only exist after client-side
      rendering. Detail pages live under /aggelies/{id}. Aggressive
      anti-bot measures, so the ceiling is conservative.
    - XE.gr: React frontend that also embeds JSON-LD. Detail pages live
      under /property/d/{id}/{slug}.
    - Tospitimou: English subdomain serves server-rendered result rows
      (.search-result, id="result-row_{id}", data-targeturl). Cards quote a
      per-m² rate (e.g. "€ 2,577/sq.m.") instead of a total price. Uses
      ``p`` as its page parameter.
"""

from typing import Optional, Union

from ..models.source import (
    ExtractionHints,
    PaginationConfig,
    PaginationStyle,
    RateLimitConfig,
    SourceConfig,
    SourceId,
)

SOURCES: dict[SourceId, SourceConfig] = {
    SourceId.SPITOGATOS: SourceConfig(
        id=SourceId.SPITOGATOS,
        name="Spitogatos.gr",
        base_url="https://www.spitogatos.gr",
        search_path="/pwlisi/katoikies",
        rate_limit=RateLimitConfig(requests_per_window=15, window_minutes=1),
        pagination=PaginationConfig(
            style=PaginationStyle.QUERY, parameter_name="page", max_pages=50
        ),
        script_rendered=True,
        referer="https://www.google.com/search?q=spitogatos+akinhta",
        detail_url_pattern=r"/aggelies/(\d+)|/property/(\d+)|/listing/(\d+)",
        hints=ExtractionHints(
            listing_card=(
                '[data-testid="property-card"]',
                'article[class*="PropertyCard"]',
                'div[class*="ResultItem"]',
                ".property-card",
            ),
            listing_link=('a[href*="/aggelies/"]', 'a[href*="/en/property/"]'),
            price=('[data-testid="price"]', '[class*="Price"]', 'span[class*="price"]'),
            title=('[data-testid="title"]', '[class*="Title"]', 'h2[class*="title"]'),
            location=('[data-testid="location"]', '[class*="Location"]', '[class*="Area"]'),
            size=('[data-testid="size"]', '[class*="Size"]'),
            bedrooms=('[data-testid="bedrooms"]', '[class*="Bedroom"]', '[class*="Room"]'),
            bathrooms=('[data-testid="bathrooms"]', '[class*="Bathroom"]'),
            property_type=('[data-testid="property-type"]', '[class*="PropertyType"]'),
            agency_name=('[data-testid="agency"]', '[class*="Agency"]', '[class*="Realtor"]'),
            images=(
                'img[data-testid="property-image"]',
                'img[data-src*="spitogatos"]',
                'img[src*="cloudfront"]',
            ),
            next_page=(
                '[data-testid="next-page"]',
                'a[rel="next"]',
                'button[aria-label="Επόμενη"]',
            ),
            no_results=(
                '[data-testid="empty-state"]',
                '[class*="EmptyResults"]',
                '[class*="NoResults"]',
            ),
        ),
    ),
    SourceId.XE_GR: SourceConfig(
        id=SourceId.XE_GR,
        name="XE.gr",
        base_url="https://www.xe.gr",
        search_path="/en/property/r/property-for-sale",
        rate_limit=RateLimitConfig(requests_per_window=20, window_minutes=1),
        pagination=PaginationConfig(
            style=PaginationStyle.QUERY, parameter_name="page", max_pages=50
        ),
        script_rendered=True,
        referer="https://www.google.com/search?q=xe.gr+akinhta",
        detail_url_pattern=r"/property/d/(\d+)",
        hints=ExtractionHints(
            listing_card=(
                '[data-testid="property-card"]',
                "[data-property-id]",
                'article[class*="PropertyCard"]',
                'div[class*="ResultCard"]',
            ),
            listing_link=('a[href*="/property/d/"]',),
            price=('[data-testid="price"]', '[class*="Price"]', 'span[class*="price"]'),
            title=('[data-testid="title"]', '[class*="Title"]', 'h2[class*="title"]'),
            location=('[data-testid="location"]', '[class*="Location"]', '[class*="Address"]'),
            size=('[data-testid="size"]', '[class*="Size"]'),
            bedrooms=('[data-testid="bedrooms"]', '[class*="Bedroom"]', '[class*="Room"]'),
            bathrooms=('[data-testid="bathrooms"]', '[class*="Bathroom"]'),
            property_type=('[data-testid="property-type"]', '[class*="Type"]'),
            agency_name=('[data-testid="agency"]', '[class*="Agency"]', '[class*="Realtor"]'),
            images=(
                'img[data-testid="property-image"]',
                'img[class*="PropertyImage"]',
                'img[src*="xe.gr"]',
            ),
            next_page=(
                'a[rel="next"]',
                'button[aria-label="Next"]',
                'button[aria-label="Επόμενη"]',
            ),
            no_results=(
                '[data-testid="empty-state"]',
                '[class*="EmptyState"]',
                '[class*="NoResults"]',
            ),
        ),
    ),
    SourceId.TOSPITIMOU: SourceConfig(
        id=SourceId.TOSPITIMOU,
        name="Tospitimou.gr",
        base_url="https://en.tospitimou.gr",
        search_path="/property/for-sale/houses",
        rate_limit=RateLimitConfig(requests_per_window=25, window_minutes=1),
        pagination=PaginationConfig(
            style=PaginationStyle.QUERY, parameter_name="p", max_pages=50
        ),
        script_rendered=True,
        referer="https://www.google.com/search?q=tospitimou+spitia",
        detail_url_pattern=r"/property/(\d+)",
        hints=ExtractionHints(
            listing_card=(
                '.search-result[id^="result-row_"]',
                '[data-targeturl*="/property/"]',
                ".property-card",
            ),
            listing_link=('a[href*="/property/"]', "[data-targeturl]"),
            price=(".priceArea", '[class*="price"]'),
            title=(".searchResultsH2 a", "h2 a", '[class*="title"]'),
            location=('[class*="location"]', '[class*="address"]', '[class*="area"]'),
            size=('[class*="size"]',),
            bedrooms=('[class*="bedroom"]',),
            bathrooms=('[class*="bathroom"]',),
            property_type=('[class*="type"]', '[class*="category"]'),
            agency_name=('[class*="agent"]', '[class*="agency"]'),
            images=('img[src*="spitogatos.gr"]', 'img[src*="tospitimou"]', "img.lazy"),
            next_page=('a[rel="next"]', ".pagination a.next"),
            no_results=(".no-results", ".empty-state", ".noListings"),
        ),
    ),
}


def get_source_config(source_id: Union[str, SourceId]) -> Optional[SourceConfig]:
    """Look up a source configuration.

    Args:
        source_id: Source identifier, as a ``SourceId`` or its string value

    Returns:
        The SourceConfig, or None if the identifier is unknown
    """
    try:
        key = SourceId(source_id)
    except ValueError:
        return None
    return SOURCES.get(key)


def all_source_ids() -> list[SourceId]:
    """Return every configured source id in registry order."""
    return list(SOURCES)


def source_names() -> dict[str, str]:
    """Map source id values to display names."""
    return {source_id.value: cfg.name for source_id, cfg in SOURCES.items()}
