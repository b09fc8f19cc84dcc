"""Pytest fixtures and test utilities."""

from typing import Callable, Optional, Union

import pytest

from listingharvester.collectors.base import ExtractionStrategy, PageResult
from listingharvester.config import Settings
from listingharvester.models.listing import RawListing, SearchFilters
from listingharvester.models.source import SourceConfig, SourceId
from listingharvester.sources import get_source_config


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStrategy(ExtractionStrategy):
    """Strategy that replays scripted pages.

    Each entry in ``pages`` is either a PageResult or an exception to
    raise for that page. Pages past the end come back empty.
    """

    def __init__(
        self,
        name: str,
        pages: Optional[list[Union[PageResult, Exception]]] = None,
        available: bool = True,
    ):
        self.name = name
        self.pages = list(pages or [])
        self.available = available
        self.calls: list[int] = []
        self.close_calls = 0

    async def fetch_page(
        self, config: SourceConfig, filters: SearchFilters, page: int
    ) -> PageResult:
        self.calls.append(page)
        if page > len(self.pages):
            return PageResult()
        outcome = self.pages[page - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def is_available(self) -> bool:
        return self.available

    async def close(self) -> None:
        self.close_calls += 1


async def no_sleep(seconds: float) -> None:
    pass


@pytest.fixture
def settings() -> Settings:
    """Settings with every pacing delay switched off."""
    return Settings(
        page_settle_seconds=0,
        post_consent_min=0,
        post_consent_max=0,
        request_jitter_min=0,
        request_jitter_max=0,
        page_jitter_min=0,
        page_jitter_max=0,
        selector_wait_ms=0,
        consent_click_timeout_ms=0,
        default_max_pages=5,
    )


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at t=1000."""
    return FakeClock()


@pytest.fixture
def spitogatos() -> SourceConfig:
    """Spitogatos source config."""
    return get_source_config(SourceId.SPITOGATOS)


@pytest.fixture
def xe_gr() -> SourceConfig:
    """XE.gr source config."""
    return get_source_config(SourceId.XE_GR)


@pytest.fixture
def tospitimou() -> SourceConfig:
    """Tospitimou source config."""
    return get_source_config(SourceId.TOSPITIMOU)


@pytest.fixture
def make_listing() -> Callable[..., RawListing]:
    """Factory for minimal RawListing records."""

    def factory(listing_id: str, **overrides) -> RawListing:
        values = {
            "source_listing_id": listing_id,
            "source_url": f"https://www.example.gr/property/{listing_id}",
            "title": f"Listing {listing_id}",
        }
        values.update(overrides)
        return RawListing(**values)

    return factory
