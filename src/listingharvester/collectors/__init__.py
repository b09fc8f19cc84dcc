"""Listing collection framework.

This module turns a source id and a set of search filters into normalized,
deduplicated listings. Each portal is reached through one of two
interchangeable extraction strategies.

Main Components:
    - ExtractionStrategy: Abstract base class for the extraction paths
    - HttpFetcher: Plain HTTP fetch plus BeautifulSoup parsing
    - BrowserFetcher: Headless Chromium with in-page extraction scripts
    - ListingCollector: Orchestrator with page loop, fallback and dedup
    - RateLimiter: Per-source fixed-window request ceiling

Example usage:
    from listingharvester.collectors import ListingCollector
    from listingharvester.models import SearchFilters

    async with ListingCollector() as collector:
        listings = await collector.collect("xe_gr", SearchFilters(), max_pages=2)
"""

from .base import (
    BrowserUnavailableError,
    CaptchaError,
    DataSourceError,
    ExtractionStrategy,
    PageResult,
    SourceNotFoundError,
    TransportError,
)
from .browser import BrowserFetcher, BrowserSession
from .collector import ListingCollector, ProbeReport
from .http import HttpFetcher
from .ratelimit import RateLimiter, human_delay

__all__ = [
    "ExtractionStrategy",
    "PageResult",
    "DataSourceError",
    "TransportError",
    "CaptchaError",
    "SourceNotFoundError",
    "BrowserUnavailableError",
    "HttpFetcher",
    "BrowserFetcher",
    "BrowserSession",
    "ListingCollector",
    "ProbeReport",
    "RateLimiter",
    "human_delay",
]
