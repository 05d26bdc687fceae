"""
pump.fun Feeds

Two adapters:
- PumpFunBrowser: Playwright session on the advanced scan page, yields the
  listings currently rendered there.
- PumpFunPriceClient: aiohttp client for the coin API, yields a price per mint.

Both are async context managers so the browser and HTTP session are always
released, including when a cycle fails halfway.
"""

import asyncio
import logging
import math
import re
from typing import Any, Dict, List, Optional

import aiohttp
from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from ..config import TOKEN_SUPPLY, config
from ..errors import FeedUnavailable, MalformedRecord, PriceUnavailable
from ..models import RawListing

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
]

# Reads every coin card on the scan page. Numbers are returned as display text
# and parsed on the Python side.
EXTRACT_LISTINGS_JS = """
() => {
    const rows = [];
    document.querySelectorAll('[data-coin-mint]').forEach(el => {
        const spans = Array.from(el.querySelectorAll('span'));
        const divs = Array.from(el.querySelectorAll('div'));
        const volDiv = divs.find(d => d.textContent.includes('Vol:'));
        const mcDiv = divs.find(d => d.textContent.includes('MC:'));
        const personIcon = el.querySelector('img[src*="person.svg"]');
        rows.push({
            rawId: el.getAttribute('data-coin-mint') || '',
            name: el.querySelector('.font-bold')?.innerText.trim() || '',
            description: el.querySelector('.font-semibold')?.innerText.trim() || '',
            age: spans.find(s => s.classList.contains('text-[11px]'))?.innerText || '',
            volume: volDiv?.innerText.match(/\\$([0-9,.KMB]+)/)?.[1] || '0',
            marketCap: mcDiv?.innerText.match(/\\$([0-9,.KMB]+)/)?.[1] || '0',
            holders: personIcon?.parentElement?.nextElementSibling?.innerText || '0',
        });
    });
    return rows;
}
"""

_MULTIPLIERS = {
    "B": 1_000_000_000,
    "M": 1_000_000,
    "K": 1_000,
}


def parse_compact_number(text: Optional[str]) -> float:
    """
    Parse a display number with an optional K/M/B suffix.

    Examples:
        "$4.2K" -> 4200
        "1.5M" -> 1500000
        "12,345" -> 12345
        "" -> 0

    Raises:
        MalformedRecord: If the text is not a number
    """
    if text is None:
        return 0.0
    cleaned = str(text).strip().replace("$", "").replace(",", "").upper()
    if not cleaned:
        return 0.0

    multiplier = 1
    if cleaned[-1] in _MULTIPLIERS:
        multiplier = _MULTIPLIERS[cleaned[-1]]
        cleaned = cleaned[:-1]

    try:
        value = float(cleaned) * multiplier
    except ValueError:
        raise MalformedRecord(f"Could not parse number: {text!r}")
    if not math.isfinite(value):
        raise MalformedRecord(f"Could not parse number: {text!r}")
    return value


def parse_holders(text: Optional[str]) -> int:
    """Holder count from its display text; unreadable counts as 0."""
    match = re.search(r"\d[\d,]*", str(text or ""))
    if not match:
        return 0
    return int(match.group(0).replace(",", ""))


def parse_listing(row: Dict[str, Any]) -> RawListing:
    """
    Turn one scraped card into a RawListing.

    Raises:
        MalformedRecord: If the card has no mint or unparseable numbers
    """
    if not isinstance(row, dict):
        raise MalformedRecord(f"Expected object, got {type(row).__name__}")

    raw_id = str(row.get("rawId") or "").strip()
    if not raw_id:
        raise MalformedRecord("Listing has no mint")

    return RawListing(
        raw_id=raw_id,
        name=str(row.get("name") or ""),
        description=str(row.get("description") or ""),
        market_cap=parse_compact_number(row.get("marketCap")),
        volume=parse_compact_number(row.get("volume")),
        holders=parse_holders(row.get("holders")),
        age_text=str(row.get("age") or ""),
    )


class PumpFunBrowser:
    """
    Headless Chromium session on the pump.fun scan page.

    The page keeps itself updated, so it is loaded once and re-read every
    cycle. A failed read drops the page so the next cycle navigates again.
    """

    def __init__(
        self,
        scan_url: str = None,
        headless: bool = None,
        timeout_sec: float = None,
    ):
        self.scan_url = scan_url or config.scan_url
        self.headless = config.headless if headless is None else headless
        self.timeout_ms = int((config.feed_timeout_sec if timeout_sec is None else timeout_sec) * 1000)

        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.page: Optional[Page] = None
        self._loaded = False

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Launch the browser."""
        logger.info("Starting browser...")
        self._playwright = await async_playwright().start()
        try:
            self.browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=BROWSER_ARGS,
            )
            self.page = await self.browser.new_page()
            self.page.set_default_timeout(self.timeout_ms)
        except PlaywrightError:
            await self.close()
            raise
        logger.info("Browser started")

    async def close(self):
        """Release the browser and the Playwright driver."""
        if self.browser:
            try:
                await self.browser.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing browser: {e}")
            self.browser = None
            self.page = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self._loaded = False
        logger.info("Browser closed")

    async def _ensure_loaded(self):
        if self._loaded:
            return
        try:
            await self.page.goto(self.scan_url, wait_until="domcontentloaded", timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise FeedUnavailable(f"Failed to load pump.fun scan page: {e}") from e
        self._loaded = True
        logger.info(f"Loaded pump.fun scan page {self.scan_url}")

    async def fetch_listings(self) -> List[RawListing]:
        """
        Read every listing card currently on the page.

        Cards that cannot be parsed are skipped and logged.

        Raises:
            FeedUnavailable: If the page cannot be loaded or read
        """
        if self.page is None:
            raise FeedUnavailable("Browser is not started")

        await self._ensure_loaded()

        try:
            rows = await self.page.evaluate(EXTRACT_LISTINGS_JS)
        except PlaywrightError as e:
            self._loaded = False
            raise FeedUnavailable(f"Failed to read listings: {e}") from e

        listings = []
        for row in rows or []:
            try:
                listings.append(parse_listing(row))
            except MalformedRecord as e:
                logger.warning(f"Skipping malformed listing: {e}")

        logger.info(f"Scraped {len(listings)} listings")
        return listings


def price_from_coin(mint: str, data: Any) -> float:
    """
    Price of one token from a coin API response.

    Raises:
        PriceUnavailable: If the response has no usable market cap
    """
    if not isinstance(data, dict):
        raise PriceUnavailable(mint, "unexpected response shape")

    usd_market_cap = data.get("usd_market_cap")
    if isinstance(usd_market_cap, bool) or not isinstance(usd_market_cap, (int, float)):
        raise PriceUnavailable(mint, "no usd_market_cap")
    if not math.isfinite(usd_market_cap) or usd_market_cap <= 0:
        raise PriceUnavailable(mint, f"invalid usd_market_cap {usd_market_cap}")

    return usd_market_cap / TOKEN_SUPPLY


class PumpFunPriceClient:
    """
    Async client for the pump.fun coin API.

    Handles:
    - One GET per mint with a total-request timeout
    - Mapping HTTP and transport failures to PriceUnavailable
    """

    def __init__(self, base_url: str = None, timeout_sec: float = None):
        self.base_url = (base_url or config.price_api_url).rstrip("/")
        self.timeout_sec = config.price_timeout_sec if timeout_sec is None else timeout_sec
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_sec),
                headers={
                    "Accept": "application/json",
                    "Origin": "https://pump.fun",
                    "Referer": "https://pump.fun/",
                },
            )

    async def close(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def fetch_price(self, mint: str) -> float:
        """
        Get the current price for a mint.

        Raises:
            PriceUnavailable: On HTTP errors, timeouts or unusable data
        """
        await self._ensure_session()
        url = f"{self.base_url}/coins/{mint}"

        try:
            async with self._session.get(url) as response:
                if response.status == 429:
                    raise PriceUnavailable(mint, "rate limited")
                if response.status != 200:
                    raise PriceUnavailable(mint, f"HTTP {response.status}")
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise PriceUnavailable(mint, f"request error: {e}") from e
        except asyncio.TimeoutError as e:
            raise PriceUnavailable(mint, "timeout") from e
        except ValueError as e:
            raise PriceUnavailable(mint, f"bad JSON: {e}") from e

        return price_from_coin(mint, data)
