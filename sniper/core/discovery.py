"""
Discovery Loop

Every scrape interval:
1. Read the listings currently shown on pump.fun
2. Build a TrackedToken for each listing (canonical mint, initial price from MC)
3. Admit new tokens into the watchlist until it is full
4. Persist after each admission
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List

from ..api.feeds import SourceFeed
from ..config import TOKEN_SUPPLY, EntryCriteria, config
from ..db.watchlist_store import WatchlistStore
from ..errors import FeedUnavailable, MalformedRecord
from ..models import RawListing, TrackedToken, utc_now
from .scheduler import PeriodicLoop

logger = logging.getLogger(__name__)

# Suffixes the scan page appends to the mint of highlighted cards
PRESENTATIONAL_SUFFIXES = ("-latest", "-featured")


def canonical_mint(raw_id: str) -> str:
    """Strip display suffixes from a scraped mint."""
    mint = raw_id.strip()
    stripped = True
    while stripped:
        stripped = False
        for suffix in PRESENTATIONAL_SUFFIXES:
            if mint.endswith(suffix):
                mint = mint[:-len(suffix)]
                stripped = True
    return mint


def build_token(listing: RawListing, now: datetime) -> TrackedToken:
    """
    Create the watchlist entry for a freshly discovered listing.

    Price is approximated from market cap until the first real sample; a
    listing with no market cap gets its baseline from that first sample.

    Raises:
        MalformedRecord: If the listing has no usable mint or numbers
    """
    mint = canonical_mint(listing.raw_id or "")
    if not mint:
        raise MalformedRecord(f"Listing {listing.raw_id!r} has no mint")

    for label, value in (("market cap", listing.market_cap), ("volume", listing.volume)):
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            raise MalformedRecord(f"Listing {mint} has invalid {label}: {value!r}")

    market_cap = float(listing.market_cap)
    return TrackedToken(
        mint=mint,
        name=listing.name,
        description=listing.description,
        market_cap=market_cap,
        volume=float(listing.volume),
        holders=int(listing.holders or 0),
        age_text=listing.age_text,
        created_at=now,
        initial_price=market_cap / TOKEN_SUPPLY if market_cap > 0 else None,
        history=[],
    )


@dataclass
class DiscoveryReport:
    """What one discovery cycle did."""
    seen: int = 0
    admitted: int = 0
    duplicates: int = 0
    rejected: int = 0
    malformed: int = 0
    cap_reached: bool = False


class DiscoveryLoop(PeriodicLoop):
    """
    Feeds new pump.fun listings into the watchlist.

    Admission stops for the rest of the cycle once the watchlist is full;
    nothing already tracked is evicted to make room.
    """

    name = "discovery"

    def __init__(
        self,
        store: WatchlistStore,
        source: SourceFeed,
        interval_sec: float = None,
        error_interval_sec: float = None,
        feed_timeout_sec: float = None,
        entry_criteria: EntryCriteria = None,
        enforce_entry_criteria: bool = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(
            interval_sec=config.scrape_interval_sec if interval_sec is None else interval_sec,
            error_interval_sec=config.error_cooldown_sec if error_interval_sec is None else error_interval_sec,
        )
        self.store = store
        self.source = source
        self.feed_timeout_sec = config.feed_timeout_sec if feed_timeout_sec is None else feed_timeout_sec
        self.entry_criteria = entry_criteria or config.entry_criteria
        self.enforce_entry_criteria = (
            config.enforce_entry_criteria if enforce_entry_criteria is None else enforce_entry_criteria
        )
        self.clock = clock

    async def _fetch_listings(self) -> List[RawListing]:
        try:
            return await asyncio.wait_for(self.source.fetch_listings(), timeout=self.feed_timeout_sec)
        except asyncio.TimeoutError as e:
            raise FeedUnavailable(f"Listing fetch timed out after {self.feed_timeout_sec:.0f}s") from e

    async def run_cycle(self) -> DiscoveryReport:
        """
        Run one discovery pass.

        Raises:
            FeedUnavailable: If listings could not be fetched
            PersistenceFailure: If the watchlist could not be saved
        """
        logger.info("Beginning scrape cycle...")
        listings = await self._fetch_listings()

        report = DiscoveryReport(seen=len(listings))

        for listing in listings:
            if self.store.is_full:
                report.cap_reached = True
                logger.warning(
                    f"Reached max tracked token limit ({self.store.max_tracked_tokens}). "
                    f"Skipping further additions."
                )
                break

            try:
                token = build_token(listing, self.clock())
            except MalformedRecord as e:
                report.malformed += 1
                logger.warning(f"Skipping malformed listing: {e}")
                continue

            if self.enforce_entry_criteria and not self.entry_criteria.matches(
                market_cap=token.market_cap,
                holders=token.holders,
                volume=token.volume,
            ):
                report.rejected += 1
                logger.debug(f"{token.mint} outside entry criteria")
                continue

            if not self.store.try_admit(token):
                report.duplicates += 1
                continue

            report.admitted += 1
            logger.info(
                f"Tracking new token: {token.name} | MC: ${token.market_cap:,.0f} "
                f"| Vol: ${token.volume:,.0f} | {token.mint}"
            )
            self.store.persist()

        logger.info(
            f"Scrape complete: {report.seen} seen, {report.admitted} admitted, "
            f"{report.duplicates} known, {report.rejected} rejected, "
            f"{report.malformed} malformed ({len(self.store)} tracked)"
        )
        return report
