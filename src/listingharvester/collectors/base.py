"""Abstract base class for page extraction strategies.

Each strategy knows how to turn (source, filters, page number) into one
page of normalized listings. The ListingCollector orchestrator drives the
page loop, chooses which strategy runs first for a source and falls back
to the other one when the first yields nothing.

Example usage:
    class MyStrategy(ExtractionStrategy):
        name = "my_strategy"

        async def fetch_page(self, config, filters, page):
            # Implementation here
            pass
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..models.listing import RawListing, SearchFilters
from ..models.source import SourceConfig


@dataclass
class PageResult:
    """Listings extracted from one search results page.

    Attributes:
        listings: Records in page order
        has_next_page: A "next page" affordance was detected
        no_results: The page carried the source's empty-results marker
        url: The URL that was fetched
    """

    listings: list[RawListing] = field(default_factory=list)
    has_next_page: bool = False
    no_results: bool = False
    url: str = ""


class ExtractionStrategy(ABC):
    """Abstract base class for the HTTP and browser extraction paths.

    Attributes:
        name: Strategy identifier used in logs and probe reports
    """

    name: str

    @abstractmethod
    async def fetch_page(
        self,
        config: SourceConfig,
        filters: SearchFilters,
        page: int,
    ) -> PageResult:
        """Fetch and extract a single page of search results.

        Args:
            config: Source configuration
            filters: Search criteria
            page: 1-indexed page number

        Returns:
            PageResult for this page. An empty listing list is a valid
            result (extraction mismatch), not an error.

        Raises:
            TransportError: On timeout, non-success status, navigation
                failure or an anti-bot challenge
        """
        pass

    def is_available(self) -> bool:
        """Check whether this strategy can run in the current environment."""
        return True

    async def open(self) -> None:
        """Acquire run-scoped resources before the first page."""

    async def close(self) -> None:
        """Release run-scoped resources. Must be safe to call repeatedly."""


class DataSourceError(Exception):
    """Base exception for source errors.

    Attributes:
        source: Identifier of the source that raised the error
        message: Error description
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class SourceNotFoundError(DataSourceError):
    """Raised in strict mode when a source id is not configured."""

    def __init__(self, source: str):
        super().__init__(source, "Unknown source id")


class TransportError(DataSourceError):
    """Raised when a page could not be retrieved.

    Covers timeouts, non-success HTTP statuses and browser navigation
    failures. Local to one page: the orchestrator stops the current
    strategy and moves on to the fallback.
    """

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(source, message)


class CaptchaError(TransportError):
    """Raised when a CAPTCHA or bot challenge is served instead of results."""

    def __init__(self, source: str):
        super().__init__(source, "CAPTCHA challenge detected - cannot proceed")


class BrowserUnavailableError(TransportError):
    """Raised when the browser automation runtime cannot be started."""

    def __init__(self, source: str, reason: str):
        self.reason = reason
        super().__init__(source, f"Browser unavailable: {reason}")
