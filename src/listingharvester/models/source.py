"""Static per-source configuration models."""

from enum import Enum

from pydantic import BaseModel, Field


class SourceId(str, Enum):
    """Known listing portals.

    The value is the stable key every other component uses to reference a
    source.
    """

    SPITOGATOS = "spitogatos"
    XE_GR = "xe_gr"
    TOSPITIMOU = "tospitimou"


class PaginationStyle(str, Enum):
    """Where the page number goes in a search URL."""

    QUERY = "query"
    PATH = "path"


class RateLimitConfig(BaseModel):
    """Politeness ceiling: at most N requests per window."""

    requests_per_window: int = Field(..., ge=1)
    window_minutes: float = Field(default=1.0, gt=0)

    @property
    def window_seconds(self) -> float:
        return self.window_minutes * 60.0

    model_config = {"frozen": True}


class PaginationConfig(BaseModel):
    """How a source paginates its search results."""

    style: PaginationStyle = PaginationStyle.QUERY
    parameter_name: str = "page"
    max_pages: int = Field(default=50, ge=1)

    model_config = {"frozen": True}


class ExtractionHints(BaseModel):
    """Best-effort CSS selectors per field.

    Hints are only a starting point. Extraction code tries them first and
    falls back to its own heuristics when they stop matching.
    """

    listing_card: tuple[str, ...] = ()
    listing_link: tuple[str, ...] = ()
    price: tuple[str, ...] = ()
    title: tuple[str, ...] = ()
    location: tuple[str, ...] = ()
    size: tuple[str, ...] = ()
    bedrooms: tuple[str, ...] = ()
    bathrooms: tuple[str, ...] = ()
    property_type: tuple[str, ...] = ()
    agency_name: tuple[str, ...] = ()
    images: tuple[str, ...] = ()
    next_page: tuple[str, ...] = ()
    no_results: tuple[str, ...] = ()

    model_config = {"frozen": True}


class SourceConfig(BaseModel):
    """Immutable configuration for one listing portal."""

    id: SourceId
    name: str = Field(..., description="Display name")
    base_url: str = Field(..., description="Scheme and host, no trailing slash")
    search_path: str = Field(..., description="Default search path")
    rate_limit: RateLimitConfig
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    hints: ExtractionHints = Field(default_factory=ExtractionHints)
    script_rendered: bool = Field(
        default=False,
        description="Listing content only appears after client-side rendering",
    )
    referer: str = Field(default="https://www.google.com/")
    detail_url_pattern: str = Field(
        ...,
        description="Regex matching a listing detail href, group 1 is the listing ID",
    )

    model_config = {"frozen": True}
