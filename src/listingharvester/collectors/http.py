"""Plain HTTP fetch-and-parse extraction path.

Uses httpx for async requests and hands the markup to
``collectors.html.parse_search_page``. Requests look like an ordinary
browser visit arriving from a search engine: rotated user agent, Greek
locale headers, Sec-* fetch metadata and a per-source referer.
"""

import asyncio
import logging
import random
from typing import Any, Optional

import httpx

from ..config import Settings
from ..config import config as default_settings
from ..models.listing import SearchFilters
from ..models.source import SourceConfig
from ..sources.urls import build_search_url
from .base import CaptchaError, ExtractionStrategy, PageResult, TransportError
from .html import parse_search_page
from .ratelimit import RateLimiter, Sleeper, human_delay

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:123.0) Gecko/20100101 Firefox/123.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
)

BASE_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "el-GR,el;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "max-age=0",
    "Sec-Ch-Ua": '"Chromium";v="122", "Not(A:Brand";v="24", "Google Chrome";v="122"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Windows"',
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "cross-site",
    "Sec-Fetch-User": "?1",
    "Dnt": "1",
}

DEFAULT_REFERER = "https://www.google.com/"


class HttpFetcher(ExtractionStrategy):
    """Fetch search pages over HTTP and parse them with BeautifulSoup.

    Attributes:
        name: "http"

    Example:
        async with httpx.AsyncClient() as client:
            fetcher = HttpFetcher(client=client)
            result = await fetcher.fetch_page(config, SearchFilters(), page=1)
    """

    name = "http"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        limiter: Optional[RateLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        """Initialize the fetcher.

        Args:
            settings: Timeouts and jitter bounds (module config if None)
            limiter: Shared rate limiter (a private one if None)
            client: Pre-built client, e.g. with a mock transport. It is
                left open on close() since the caller owns it.
            sleep: Coroutine used for jitter pauses
        """
        self.settings = settings or default_settings
        self.limiter = limiter or RateLimiter(max_wait=self.settings.rate_limit_max_wait)
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.settings.http_timeout,
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    def build_headers(self, config: SourceConfig) -> dict[str, str]:
        """Browser-like request headers with a random user agent."""
        headers = dict(BASE_HEADERS)
        headers["User-Agent"] = random.choice(USER_AGENTS)
        headers["Referer"] = config.referer or DEFAULT_REFERER
        return headers

    def _is_captcha_response(self, response: httpx.Response) -> bool:
        """Check if the response is an anti-bot challenge instead of results.

        Real result pages are large and carry listing markup; challenge
        pages are small and name the challenge vendor or widget.
        """
        content = response.text.lower()

        valid_page_indicators = [
            "application/ld+json",
            "result-row_",
            "/aggelies/",
            "/property/d/",
            "data-property-id",
            "data-targeturl",
        ]
        if any(indicator in content for indicator in valid_page_indicators):
            return False

        if len(response.content) > 10000 and response.status_code == 200:
            return False

        captcha_challenge_indicators = [
            "g-recaptcha-response",
            "please verify you are human",
            "i'm not a robot",
            "captcha-container",
            "challenge-form",
            "cf-challenge",
            "px-captcha",
            "_incapsula_resource",
            "access denied",
        ]
        return any(indicator in content for indicator in captcha_challenge_indicators)

    async def fetch_html(self, config: SourceConfig, url: str) -> str:
        """Issue one rate-limited, jittered GET and return the body.

        Raises:
            CaptchaError: If a challenge page is served
            TransportError: On timeout, network failure or non-2xx status
        """
        source = config.id.value
        await self.limiter.wait_for_slot(source, config.rate_limit)
        await human_delay(
            self.settings.request_jitter_min,
            self.settings.request_jitter_max,
            sleep=self._sleep,
        )

        client = await self._get_client()
        try:
            response = await client.get(
                url,
                headers=self.build_headers(config),
                timeout=self.settings.http_timeout,
            )
        except httpx.TimeoutException:
            raise TransportError(source, f"Timeout after {self.settings.http_timeout}s: {url}")
        except httpx.HTTPError as e:
            raise TransportError(source, f"Request failed for {url}: {e}")

        if self._is_captcha_response(response):
            raise CaptchaError(source)

        if not response.is_success:
            raise TransportError(
                source, f"HTTP error {response.status_code}: {url}", response.status_code
            )

        return response.text

    async def fetch_page(
        self,
        config: SourceConfig,
        filters: SearchFilters,
        page: int,
    ) -> PageResult:
        url = build_search_url(config, filters, page)
        logger.info(f"[http] {config.id.value} page {page}: {url}")

        html = await self.fetch_html(config, url)
        result = parse_search_page(html, config, filters, url=url)

        logger.info(
            f"[http] {config.id.value} page {page}: {len(result.listings)} listings"
            f"{' (no results)' if result.no_results else ''}"
        )
        return result

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._client and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
        if self._owns_client:
            self._client = None

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
