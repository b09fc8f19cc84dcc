"""Headless-browser extraction path for script-rendered portals.

Uses Playwright's Chromium. One ``BrowserSession`` (driver, browser,
context, page) lives for a whole collection run and is released on every
exit path. Each page visit follows the same sequence: rate limit,
navigate, settle, dismiss the consent banner, wait for listings, run the
source's in-page extraction script, then normalize the returned payload
through ``normalize.build_listing``.

Playwright is imported lazily so the HTTP path works without it.
"""

import asyncio
import importlib.util
import logging
from typing import Any, Callable, Optional

from ..config import Settings
from ..config import config as default_settings
from ..models.listing import RawListing, SearchFilters
from ..models.source import SourceConfig
from ..sources.urls import build_search_url
from .base import BrowserUnavailableError, ExtractionStrategy, PageResult, TransportError
from .browser_scripts import (
    CONSENT_SELECTORS,
    EXTRACTION_SCRIPTS,
    FRAME_CONSENT_SELECTORS,
    GENERIC_LINK_SCRIPT,
    LISTING_WAIT_SELECTORS,
    NEXT_PAGE_SCRIPT,
    NO_RESULTS_SCRIPT,
)
from .html import PAYLOAD_FINISHERS
from .normalize import build_listing
from .ratelimit import RateLimiter, Sleeper, human_delay

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--disable-web-security",
    "--window-size=1920,1080",
]

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

HIDE_WEBDRIVER_SCRIPT = "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"

FRAME_CLICK_TIMEOUT_MS = 1000


def _default_playwright_factory() -> Any:
    try:
        from playwright.async_api import async_playwright
    except ImportError as e:
        raise BrowserUnavailableError("browser", "playwright is not installed") from e
    return async_playwright()


class BrowserSession:
    """Run-scoped Chromium session.

    Example:
        async with BrowserSession(settings) as session:
            await session.page.goto(url)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        playwright_factory: Optional[Callable[[], Any]] = None,
    ):
        """Initialize the session.

        Args:
            settings: Headless flag and timeouts (module config if None)
            playwright_factory: Returns an object whose ``start()``
                coroutine yields a Playwright driver. Defaults to
                ``playwright.async_api.async_playwright``.
        """
        self.settings = settings or default_settings
        self._factory = playwright_factory or _default_playwright_factory
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self.page: Any = None

    @property
    def is_open(self) -> bool:
        return self.page is not None

    async def start(self) -> None:
        """Launch the browser and open a masked page.

        Raises:
            BrowserUnavailableError: If Playwright or Chromium cannot start
        """
        if self.is_open:
            return
        try:
            self._playwright = await self._factory().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.headless,
                args=LAUNCH_ARGS,
            )
            self._context = await self._browser.new_context(
                user_agent=BROWSER_USER_AGENT,
                viewport={"width": 1920, "height": 1080},
                locale="en-GB",
                timezone_id="Europe/Athens",
                bypass_csp=True,
                ignore_https_errors=True,
                java_script_enabled=True,
            )
            await self._context.add_init_script(HIDE_WEBDRIVER_SCRIPT)
            self.page = await self._context.new_page()
            logger.info("Browser session started")
        except BrowserUnavailableError:
            await self.close()
            raise
        except Exception as e:
            await self.close()
            raise BrowserUnavailableError("browser", str(e)) from e

    async def close(self) -> None:
        """Release page context, browser and driver. Safe to call repeatedly."""
        context, browser, playwright = self._context, self._browser, self._playwright
        self.page = self._context = self._browser = self._playwright = None

        for label, release in (
            ("context", context.close if context else None),
            ("browser", browser.close if browser else None),
            ("driver", playwright.stop if playwright else None),
        ):
            if release is None:
                continue
            try:
                await release()
            except Exception as e:
                logger.warning(f"Failed to release browser {label}: {e}")

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def dismiss_consent(page: Any, timeout_ms: int = 2000) -> Optional[str]:
    """Click the first consent button found, on the page then inside frames.

    Failure to find or click anything is not an error.

    Returns:
        The selector that was clicked, or None
    """
    for selector in CONSENT_SELECTORS:
        try:
            await page.click(selector, timeout=timeout_ms)
        except Exception:
            continue
        logger.debug(f"Clicked consent: {selector}")
        return selector

    for frame in list(getattr(page, "frames", None) or []):
        for selector in FRAME_CONSENT_SELECTORS:
            try:
                await frame.click(selector, timeout=FRAME_CLICK_TIMEOUT_MS)
            except Exception:
                continue
            logger.debug(f"Clicked consent in frame: {selector}")
            return selector

    return None


async def wait_for_listings(page: Any, config: SourceConfig, timeout_ms: int) -> Optional[str]:
    """Wait for the first listing selector that appears.

    Returns:
        The selector that matched, or None if none appeared in time
    """
    card_hint = config.hints.listing_card[0] if config.hints.listing_card else "article"
    selectors = (LISTING_WAIT_SELECTORS[0], card_hint, *LISTING_WAIT_SELECTORS[1:])
    for selector in selectors:
        try:
            await page.wait_for_selector(selector, timeout=timeout_ms)
        except Exception:
            continue
        logger.debug(f"Found elements with selector: {selector}")
        return selector
    return None


def listings_from_payload(
    payload: Any, config: SourceConfig, filters: SearchFilters
) -> list[RawListing]:
    """Normalize an in-page script's result into RawListings.

    Non-dict entries are ignored; duplicates within the payload keep the
    first occurrence.
    """
    if not isinstance(payload, list):
        return []

    finisher = PAYLOAD_FINISHERS.get(config.id)
    listings = []
    seen: set[str] = set()
    for item in payload:
        if not isinstance(item, dict):
            continue
        fields = dict(item)
        if finisher:
            fields = finisher(fields)
        listing = build_listing(
            fields,
            base_url=config.base_url,
            transaction_type=filters.transaction_type,
            raw_data={"extraction": "browser"},
        )
        if listing is None or listing.source_listing_id in seen:
            continue
        seen.add(listing.source_listing_id)
        listings.append(listing)
    return listings


class BrowserFetcher(ExtractionStrategy):
    """Fetch search pages by rendering them in headless Chromium.

    The session is opened on the first page (or by ``open()``) and reused
    until ``close()``.

    Attributes:
        name: "browser"
    """

    name = "browser"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        limiter: Optional[RateLimiter] = None,
        session_factory: Optional[Callable[[Settings], BrowserSession]] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.settings = settings or default_settings
        self.limiter = limiter or RateLimiter(max_wait=self.settings.rate_limit_max_wait)
        self._session_factory = session_factory or BrowserSession
        self._session: Optional[BrowserSession] = None
        self._sleep = sleep

    def is_available(self) -> bool:
        """True when the playwright package can be imported."""
        if self._session_factory is not BrowserSession:
            return True
        return importlib.util.find_spec("playwright") is not None

    async def open(self) -> None:
        if self._session is None:
            session = self._session_factory(self.settings)
            await session.start()
            self._session = session

    async def close(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            await session.close()

    async def _evaluate(self, page: Any, config: SourceConfig, script: str, arg: Any = None) -> Any:
        try:
            if arg is None:
                return await page.evaluate(script)
            return await page.evaluate(script, arg)
        except Exception as e:
            raise TransportError(config.id.value, f"In-page script failed: {e}") from e

    async def fetch_page(
        self,
        config: SourceConfig,
        filters: SearchFilters,
        page: int,
    ) -> PageResult:
        source = config.id.value
        try:
            await self.open()
        except BrowserUnavailableError as e:
            raise BrowserUnavailableError(source, e.reason) from e

        browser_page = self._session.page
        url = build_search_url(config, filters, page)
        logger.info(f"[browser] {source} page {page}: {url}")

        await self.limiter.wait_for_slot(source, config.rate_limit)

        try:
            await browser_page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.settings.browser_timeout_ms,
            )
        except Exception as e:
            raise TransportError(source, f"Navigation failed for {url}: {e}") from e

        await self._sleep(self.settings.page_settle_seconds)

        clicked = await dismiss_consent(browser_page, self.settings.consent_click_timeout_ms)
        logger.debug(f"[browser] {source} consent handled: {clicked is not None}")
        await human_delay(
            self.settings.post_consent_min,
            self.settings.post_consent_max,
            sleep=self._sleep,
        )

        await wait_for_listings(browser_page, config, self.settings.selector_wait_ms)

        if config.hints.no_results and await self._evaluate(
            browser_page, config, NO_RESULTS_SCRIPT, list(config.hints.no_results)
        ):
            logger.info(f"[browser] {source}: no results marker on page {page}")
            return PageResult(no_results=True, url=url)

        script = EXTRACTION_SCRIPTS.get(config.id, GENERIC_LINK_SCRIPT)
        payload = await self._evaluate(browser_page, config, script, source)
        if not payload and script is not GENERIC_LINK_SCRIPT:
            logger.debug(f"[browser] {source}: source script found nothing, trying links")
            payload = await self._evaluate(browser_page, config, GENERIC_LINK_SCRIPT, source)

        listings = listings_from_payload(payload, config, filters)
        has_next = bool(await self._evaluate(browser_page, config, NEXT_PAGE_SCRIPT))
        logger.info(f"[browser] {source} page {page}: {len(listings)} listings")

        if has_next:
            await human_delay(
                self.settings.page_jitter_min,
                self.settings.page_jitter_max,
                sleep=self._sleep,
            )

        return PageResult(listings=listings, has_next_page=has_next, url=url)
