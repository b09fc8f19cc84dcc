"""ListingHarvester: listing ingestion for Greek real estate portals."""

from .collectors import ListingCollector
from .models import RawListing, SearchFilters, SourceId, TransactionType

__version__ = "0.1.0"

__all__ = [
    "ListingCollector",
    "RawListing",
    "SearchFilters",
    "SourceId",
    "TransactionType",
]
