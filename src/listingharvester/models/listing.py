"""Listing and search filter data models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    """Kind of transaction a listing is offered for."""

    SALE = "sale"
    RENT = "rent"


class PropertyType(str, Enum):
    """Canonical residential and commercial property types."""

    APARTMENT = "APARTMENT"
    HOUSE = "HOUSE"
    MAISONETTE = "MAISONETTE"
    STUDIO = "STUDIO"
    LOFT = "LOFT"
    PENTHOUSE = "PENTHOUSE"
    VILLA = "VILLA"
    LAND = "LAND"
    COMMERCIAL = "COMMERCIAL"
    WAREHOUSE = "WAREHOUSE"
    PARKING = "PARKING"
    OTHER = "OTHER"


class SearchFilters(BaseModel):
    """Caller-supplied search criteria for one collection run.

    Every field is optional except the transaction type, which defaults
    to a sale search.
    """

    transaction_type: TransactionType = Field(
        default=TransactionType.SALE, description="Sale or rent"
    )
    min_price: int | None = Field(default=None, ge=0, description="Minimum price in EUR")
    max_price: int | None = Field(default=None, ge=0, description="Maximum price in EUR")
    min_size: int | None = Field(default=None, ge=0, description="Minimum size in m²")
    max_size: int | None = Field(default=None, ge=0, description="Maximum size in m²")
    bedrooms: int | None = Field(default=None, ge=0, description="Minimum bedrooms")
    areas: tuple[str, ...] = Field(default=(), description="Target areas")
    municipalities: tuple[str, ...] = Field(default=(), description="Target municipalities")
    property_types: tuple[PropertyType, ...] = Field(
        default=(), description="Restrict to these property types"
    )

    @property
    def target_areas(self) -> tuple[str, ...]:
        """Areas to search, falling back to municipalities when none given."""
        return self.areas or self.municipalities

    @property
    def primary_area(self) -> str | None:
        """First target area, the only one portals accept in a single search."""
        areas = self.target_areas
        return areas[0] if areas else None

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }


class RawListing(BaseModel):
    """Normalized listing record produced by one page-extraction pass.

    ``source_listing_id`` is the only deduplication key and, together with
    ``source_url``, the only required field. Every other field is left
    empty when the source text could not be parsed.
    """

    # Identification
    source_listing_id: str = Field(..., min_length=1, description="ID unique within a source")
    source_url: str = Field(..., min_length=1, description="Absolute URL of the listing")
    title: str | None = Field(default=None, description="Listing headline")

    # Pricing
    price: int | None = Field(default=None, ge=0, description="Asking price in whole EUR")
    price_text: str | None = Field(default=None, description="Price text as published")
    price_derived: bool = Field(
        default=False,
        description="True when price was computed from a per-m² rate and the size",
    )

    # Classification
    property_type: PropertyType | None = Field(default=None, description="Canonical type")
    transaction_type: TransactionType = Field(default=TransactionType.SALE)

    # Location
    address: str | None = Field(default=None, description="Free-text location")
    area: str | None = Field(default=None, description="Neighbourhood or area")
    municipality: str | None = Field(default=None, description="Municipality or region")
    postal_code: str | None = Field(default=None, description="5-digit Greek postal code")
    latitude: float | None = Field(default=None)
    longitude: float | None = Field(default=None)

    # Property details
    size_sqm: int | None = Field(default=None, ge=0, description="Living area in m²")
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    floor: str | None = Field(default=None, description="Floor, '0' for ground")

    # Listing info
    agency_name: str | None = Field(default=None)
    images: list[str] = Field(default_factory=list, description="Absolute image URLs")

    # Source-specific fields kept for debugging and re-parsing
    raw_data: dict[str, Any] = Field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict for the persistence layer."""
        return self.model_dump(mode="json")

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }
