"""Collection orchestrator.

This module provides the ListingCollector class which turns "fetch the
current listings matching these filters from this source" into a
deduplicated list of RawListing records. It picks the extraction strategy
for the source, drives the page loop, falls back to the other strategy
when the first one yields nothing and never raises for per-page failures.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

from ..config import Settings
from ..config import config as default_settings
from ..models.listing import RawListing, SearchFilters, TransactionType
from ..models.source import SourceConfig, SourceId
from ..sources.registry import get_source_config
from .base import ExtractionStrategy, SourceNotFoundError, TransportError
from .browser import BrowserFetcher
from .http import HttpFetcher
from .ratelimit import RateLimiter

logger = logging.getLogger(__name__)

StrategyFactory = Callable[[Settings, RateLimiter], ExtractionStrategy]


@dataclass
class StrategyRun:
    """What one strategy produced during a collection."""

    strategy: str
    pages_attempted: int = 0
    new_listings: int = 0
    errors: list[str] = field(default_factory=list)
    stopped_by: Optional[str] = None


@dataclass
class CollectionOutcome:
    """Listings plus the bookkeeping of how they were obtained."""

    source_id: str
    listings: list[RawListing] = field(default_factory=list)
    runs: list[StrategyRun] = field(default_factory=list)

    @property
    def pages_attempted(self) -> int:
        return sum(run.pages_attempted for run in self.runs)

    @property
    def errors(self) -> list[str]:
        return [error for run in self.runs for error in run.errors]

    @property
    def strategy(self) -> Optional[str]:
        """The strategy that produced listings, else the last one tried."""
        for run in self.runs:
            if run.new_listings:
                return run.strategy
        return self.runs[-1].strategy if self.runs else None


@dataclass
class ProbeReport:
    """Diagnostic summary of a small collection run."""

    source_id: str
    strategy: Optional[str]
    total: int
    with_price: int
    with_size: int
    with_images: int
    pages_attempted: int
    duration_seconds: float
    sample: list[RawListing] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.total > 0


class ListingCollector:
    """Collects listings from the configured portals.

    Script-rendered sources try the browser path first, the others the
    HTTP path first. When the first strategy yields no records at all, the
    other one runs once with the full page budget. Records are
    deduplicated by ``source_listing_id``; the first one seen wins.

    Both strategies share one RateLimiter, so request ceilings hold across
    paths and across concurrent ``collect_many`` sources.

    Example:
        async with ListingCollector() as collector:
            listings = await collector.collect(
                "tospitimou",
                SearchFilters(areas=("Athens-North",), max_price=400000),
                max_pages=3,
            )
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        limiter: Optional[RateLimiter] = None,
        http_factory: Optional[StrategyFactory] = None,
        browser_factory: Optional[StrategyFactory] = None,
    ):
        """Initialize the collector.

        Args:
            settings: Engine settings (module config if None)
            limiter: Shared rate limiter (a new one if None)
            http_factory: Builds the HTTP strategy for one run
            browser_factory: Builds the browser strategy for one run
        """
        self.settings = settings or default_settings
        self.limiter = limiter or RateLimiter(max_wait=self.settings.rate_limit_max_wait)
        self._http_factory = http_factory or HttpFetcher
        self._browser_factory = browser_factory or BrowserFetcher
        self._active: list[ExtractionStrategy] = []

    def _strategies_for(self, config: SourceConfig) -> tuple[ExtractionStrategy, ExtractionStrategy]:
        http = self._http_factory(self.settings, self.limiter)
        browser = self._browser_factory(self.settings, self.limiter)
        if config.script_rendered:
            return browser, http
        return http, browser

    def _resolve(self, source_id: Union[str, SourceId], strict: bool) -> Optional[SourceConfig]:
        config = get_source_config(source_id)
        if config is None:
            if strict or self.settings.strict_sources:
                raise SourceNotFoundError(str(getattr(source_id, "value", source_id)))
            logger.warning(f"Unknown source {source_id!r}, skipping")
        return config

    def _page_budget(self, config: SourceConfig, max_pages: Optional[int]) -> int:
        requested = self.settings.default_max_pages if max_pages is None else max_pages
        return max(0, min(requested, config.pagination.max_pages))

    async def _run_strategy(
        self,
        strategy: ExtractionStrategy,
        config: SourceConfig,
        filters: SearchFilters,
        page_budget: int,
        seen: dict[str, RawListing],
    ) -> StrategyRun:
        """Drive one strategy over sequential pages, merging into ``seen``."""
        run = StrategyRun(strategy=strategy.name)
        source = config.id.value

        if not strategy.is_available():
            run.errors.append(f"{strategy.name} strategy unavailable")
            run.stopped_by = "unavailable"
            logger.warning(f"{source}: {strategy.name} strategy unavailable")
            return run

        self._active.append(strategy)
        try:
            for page in range(1, page_budget + 1):
                run.pages_attempted += 1
                try:
                    result = await strategy.fetch_page(config, filters, page)
                except TransportError as e:
                    logger.warning(f"{source}: {strategy.name} failed on page {page}: {e}")
                    run.errors.append(str(e))
                    run.stopped_by = "transport_error"
                    break
                except Exception as e:
                    logger.error(f"{source}: unexpected {strategy.name} error on page {page}: {e}")
                    run.errors.append(f"[{source}] {e}")
                    run.stopped_by = "error"
                    break

                new = 0
                for listing in result.listings:
                    if listing.source_listing_id not in seen:
                        seen[listing.source_listing_id] = listing
                        new += 1
                run.new_listings += new

                if result.no_results:
                    run.stopped_by = "no_results"
                    break
                if new == 0 and not result.has_next_page:
                    run.stopped_by = "exhausted"
                    break
            else:
                run.stopped_by = "page_budget"
        finally:
            await self._release(strategy)

        logger.info(
            f"{source}: {strategy.name} yielded {run.new_listings} new listings "
            f"over {run.pages_attempted} page(s), stopped by {run.stopped_by}"
        )
        return run

    async def _release(self, strategy: ExtractionStrategy) -> None:
        if strategy in self._active:
            self._active.remove(strategy)
        try:
            await strategy.close()
        except Exception as e:
            logger.debug(f"Error closing {strategy.name}: {e}")

    async def _collect(
        self, config: SourceConfig, filters: SearchFilters, max_pages: Optional[int]
    ) -> CollectionOutcome:
        outcome = CollectionOutcome(source_id=config.id.value)
        budget = self._page_budget(config, max_pages)
        if budget == 0:
            return outcome

        seen: dict[str, RawListing] = {}
        primary, fallback = self._strategies_for(config)

        run = await self._run_strategy(primary, config, filters, budget, seen)
        outcome.runs.append(run)

        if run.new_listings == 0:
            logger.info(f"{config.id.value}: {primary.name} found nothing, falling back to {fallback.name}")
            outcome.runs.append(await self._run_strategy(fallback, config, filters, budget, seen))

        outcome.listings = list(seen.values())
        return outcome

    async def collect(
        self,
        source_id: Union[str, SourceId],
        filters: Optional[SearchFilters] = None,
        max_pages: Optional[int] = None,
        *,
        strict: bool = False,
    ) -> list[RawListing]:
        """Collect current listings from one source.

        Args:
            source_id: Source identifier
            filters: Search criteria (sale listings with no filter if None)
            max_pages: Page budget, capped by the source's own maximum
            strict: Raise for unknown sources instead of returning []

        Returns:
            Listings in first-seen order, unique by source_listing_id.
            Partial results are returned when a page fails.

        Raises:
            SourceNotFoundError: Only in strict mode
        """
        config = self._resolve(source_id, strict)
        if config is None:
            return []

        started = time.monotonic()
        outcome = await self._collect(config, filters or SearchFilters(), max_pages)
        logger.info(
            f"{config.id.value}: collected {len(outcome.listings)} listings "
            f"in {time.monotonic() - started:.1f}s via {outcome.strategy}"
        )
        return outcome.listings

    async def collect_many(
        self,
        source_ids: Iterable[Union[str, SourceId]],
        filters: Optional[SearchFilters] = None,
        max_pages: Optional[int] = None,
    ) -> dict[str, list[RawListing]]:
        """Collect from several sources concurrently.

        Each source keeps its own sequential page loop and its own browser
        session; only the rate limiter is shared.

        Returns:
            Mapping of source id value to its listings
        """
        keys = [str(getattr(s, "value", s)) for s in source_ids]
        results = await asyncio.gather(*(self.collect(key, filters, max_pages) for key in keys))
        return dict(zip(keys, results))

    async def probe(
        self,
        source_id: Union[str, SourceId],
        transaction_type: TransactionType = TransactionType.SALE,
        max_pages: int = 2,
        sample_size: int = 10,
    ) -> ProbeReport:
        """Run a small collection and summarize field coverage.

        Returns:
            ProbeReport; unknown sources give an empty report with an error
        """
        key = str(getattr(source_id, "value", source_id))
        config = get_source_config(source_id)
        if config is None:
            return ProbeReport(
                source_id=key,
                strategy=None,
                total=0,
                with_price=0,
                with_size=0,
                with_images=0,
                pages_attempted=0,
                duration_seconds=0.0,
                errors=[f"Unknown source id: {key}"],
            )

        started = time.monotonic()
        outcome = await self._collect(
            config, SearchFilters(transaction_type=transaction_type), max_pages
        )
        listings = outcome.listings

        return ProbeReport(
            source_id=config.id.value,
            strategy=outcome.strategy,
            total=len(listings),
            with_price=sum(1 for item in listings if item.price is not None),
            with_size=sum(1 for item in listings if item.size_sqm is not None),
            with_images=sum(1 for item in listings if item.images),
            pages_attempted=outcome.pages_attempted,
            duration_seconds=time.monotonic() - started,
            sample=listings[:sample_size],
            errors=outcome.errors,
        )

    async def close(self) -> None:
        """Close any strategy still holding resources."""
        for strategy in list(self._active):
            await self._release(strategy)

    async def __aenter__(self) -> "ListingCollector":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
