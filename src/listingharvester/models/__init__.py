"""Data models for ListingHarvester."""

from listingharvester.models.listing import (
    PropertyType,
    RawListing,
    SearchFilters,
    TransactionType,
)
from listingharvester.models.source import (
    ExtractionHints,
    PaginationConfig,
    PaginationStyle,
    RateLimitConfig,
    SourceConfig,
    SourceId,
)

__all__ = [
    "PropertyType",
    "RawListing",
    "SearchFilters",
    "TransactionType",
    "ExtractionHints",
    "PaginationConfig",
    "PaginationStyle",
    "RateLimitConfig",
    "SourceConfig",
    "SourceId",
]
