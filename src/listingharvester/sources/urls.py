"""Search URL construction from filters.

Each portal has its own URL scheme, so every ``SourceId`` maps to a
builder function. Builders return the path and query parameters; the
shared ``build_search_url`` applies pagination and joins the pieces.
"""

import logging
import re
from typing import Callable
from urllib.parse import urlencode

from ..models.listing import PropertyType, SearchFilters, TransactionType
from ..models.source import PaginationStyle, SourceConfig, SourceId

logger = logging.getLogger(__name__)

# Internal location codes used by XE.gr and Tospitimou
AREA_ID_MAPPING = {
    "athens": "100",
    "athens-center": "100",
    "αθήνα": "100",
    "athens-north": "101",
    "athens-south": "102",
    "athens-west": "103",
    "athens-east": "104",
    "piraeus": "105",
    "thessaloniki": "108",
    "θεσσαλονίκη": "108",
    "glyfada": "102",
    "γλυφάδα": "102",
    "kifisia": "101",
    "κηφισιά": "101",
    "kolonaki": "100",
    "κολωνάκι": "100",
}

# XE.gr property type URL segments
XE_PROPERTY_TYPE_SEGMENTS = {
    PropertyType.APARTMENT: "apartment",
    PropertyType.HOUSE: "detached-house",
    PropertyType.MAISONETTE: "maisonette",
    PropertyType.VILLA: "detached-house",
    PropertyType.STUDIO: "apartment",
    PropertyType.LAND: "plots-of-land",
    PropertyType.COMMERCIAL: "commercial-property",
    PropertyType.PARKING: "parking-spaces",
    PropertyType.WAREHOUSE: "commercial-property",
}

# Tospitimou needs a concrete area; Athens-Center is its most reliable default
TOSPITIMOU_DEFAULT_AREA = ("Athens-Center", "100")

UrlParts = tuple[str, dict[str, str]]


def area_slug(area: str) -> str:
    """Lowercase, hyphen-joined key used for area id lookups."""
    return re.sub(r"\s+", "-", area.strip().lower())


def lookup_area_id(area: str) -> str | None:
    """Map an area name to a portal location code, if known."""
    return AREA_ID_MAPPING.get(area_slug(area)) or AREA_ID_MAPPING.get(area.strip().lower())


def title_case_slug(area: str) -> str:
    """'athens north' -> 'Athens-North'."""
    words = [w for w in re.split(r"[\s-]+", area.strip()) if w]
    return "-".join(w[:1].upper() + w[1:].lower() for w in words)


def _price_and_size_params(filters: SearchFilters) -> dict[str, str]:
    params: dict[str, str] = {}
    if filters.min_price:
        params["price_from"] = str(filters.min_price)
    if filters.max_price:
        params["price_to"] = str(filters.max_price)
    if filters.min_size:
        params["size_from"] = str(filters.min_size)
    if filters.max_size:
        params["size_to"] = str(filters.max_size)
    return params


def _spitogatos_parts(config: SourceConfig, filters: SearchFilters) -> UrlParts:
    # Greek path structure tends to render more reliably than /en/search
    if filters.transaction_type == TransactionType.RENT:
        path = "/enoikiasi/katoikies"
    else:
        path = config.search_path

    params = _price_and_size_params(filters)
    if filters.bedrooms:
        params["bedrooms_from"] = str(filters.bedrooms)
    if filters.primary_area:
        params["geo_area_txt"] = filters.primary_area
    return path, params


def _xe_parts(config: SourceConfig, filters: SearchFilters) -> UrlParts:
    transaction = "to-rent" if filters.transaction_type == TransactionType.RENT else "for-sale"

    segment = "property"
    if len(filters.property_types) == 1:
        segment = XE_PROPERTY_TYPE_SEGMENTS.get(filters.property_types[0], segment)

    path = f"/en/property/r/{segment}-{transaction}"

    area = filters.primary_area
    if area:
        area_id = lookup_area_id(area)
        if area_id:
            path += f"/{area_id}_{title_case_slug(area_slug(area))}"
        else:
            logger.debug(f"No XE.gr location code for area {area!r}, searching all")

    # XE.gr ignores price params in the URL; prices are filtered after parsing
    return path, {}


def _tospitimou_parts(config: SourceConfig, filters: SearchFilters) -> UrlParts:
    transaction = "to-rent" if filters.transaction_type == TransactionType.RENT else "for-sale"
    path = f"/property/{transaction}/houses"

    area = filters.primary_area
    if area:
        area_id = lookup_area_id(area)
        if area_id:
            path += f"/{title_case_slug(area_slug(area))}/area-ids_%5B{area_id}%5D,category_residential"
        else:
            path += f"/{title_case_slug(area)}"
    else:
        name, area_id = TOSPITIMOU_DEFAULT_AREA
        path += f"/{name}/area-ids_%5B{area_id}%5D,category_residential"

    return path, _price_and_size_params(filters)


URL_BUILDERS: dict[SourceId, Callable[[SourceConfig, SearchFilters], UrlParts]] = {
    SourceId.SPITOGATOS: _spitogatos_parts,
    SourceId.XE_GR: _xe_parts,
    SourceId.TOSPITIMOU: _tospitimou_parts,
}

# Query params appended after pagination, in the order the portals expect
TRAILING_PARAMS: dict[SourceId, dict[str, str]] = {
    SourceId.SPITOGATOS: {"sort": "date", "order": "desc"},
}


def build_search_url(config: SourceConfig, filters: SearchFilters, page: int = 1) -> str:
    """Build the search results URL for one page.

    Args:
        config: Source configuration
        filters: Search criteria
        page: 1-indexed page number; page 1 never carries a page marker

    Returns:
        Absolute URL
    """
    builder = URL_BUILDERS.get(config.id)
    if builder is None:
        return f"{config.base_url}{config.search_path}"

    path, params = builder(config, filters)

    if page > 1:
        pagination = config.pagination
        if pagination.style == PaginationStyle.PATH:
            path = f"{path.rstrip('/')}/{pagination.parameter_name}/{page}"
        else:
            params[pagination.parameter_name] = str(page)

    params.update(TRAILING_PARAMS.get(config.id, {}))

    query = urlencode(params)
    return f"{config.base_url}{path}{'?' + query if query else ''}"
