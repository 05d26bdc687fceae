"""
Tracking Loop

Every track interval, for each token on the watchlist:
1. Fetch the current price (skip the token on failure)
2. Append it to the token's history, filling the initial price if unset
3. If the gain reaches the trigger, dispatch the trade and retire the token
4. Record a price snapshot

The watchlist is persisted once at the end of the cycle.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional

from ..alerts.dispatcher import DispatchResult, TradeDispatcher
from ..api.feeds import PriceFeed
from ..config import config
from ..db.history_db import HistoryDB
from ..db.watchlist_store import WatchlistStore
from ..errors import FeedUnavailable, PriceUnavailable
from ..models import TrackedToken, utc_now
from .scheduler import PeriodicLoop

logger = logging.getLogger(__name__)


def is_valid_price(value: Any) -> bool:
    """A usable price is a finite, positive, non-bool number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


@dataclass
class TrackingReport:
    """What one tracking cycle did."""
    checked: int = 0
    skipped: int = 0
    errors: int = 0
    triggered: List[str] = field(default_factory=list)


class TrackingLoop(PeriodicLoop):
    """
    Polls prices for every watched token and fires the gain trigger.

    A token triggers at most once: it is retired whether or not the trade
    endpoint accepted the dispatch.
    """

    name = "tracker"

    def __init__(
        self,
        store: WatchlistStore,
        price_feed: PriceFeed,
        dispatcher: TradeDispatcher,
        history_db: Optional[HistoryDB] = None,
        interval_sec: float = None,
        error_interval_sec: float = None,
        gain_trigger_pct: float = None,
        price_timeout_sec: float = None,
        dispatch_timeout_sec: float = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(
            interval_sec=config.track_interval_sec if interval_sec is None else interval_sec,
            error_interval_sec=config.error_cooldown_sec if error_interval_sec is None else error_interval_sec,
        )
        self.store = store
        self.price_feed = price_feed
        self.dispatcher = dispatcher
        self.history_db = history_db
        self.gain_trigger_pct = config.gain_trigger_pct if gain_trigger_pct is None else gain_trigger_pct
        self.price_timeout_sec = config.price_timeout_sec if price_timeout_sec is None else price_timeout_sec
        self.dispatch_timeout_sec = config.dispatch_timeout_sec if dispatch_timeout_sec is None else dispatch_timeout_sec
        self.clock = clock

    async def run_cycle(self) -> TrackingReport:
        """
        Run one tracking pass over the whole watchlist.

        A PriceUnavailable for one token only skips that token. A
        FeedUnavailable means the price feed itself is down, so the rest of the
        cycle is abandoned; prices already recorded are still saved.

        Raises:
            FeedUnavailable: If the price feed cannot be reached
            PersistenceFailure: If the watchlist could not be saved
        """
        tokens = self.store.all()
        logger.info(f"Tracking {len(tokens)} tokens")

        report = TrackingReport()
        try:
            for token in tokens:
                if self.stopping:
                    break
                try:
                    await self._track_token(token, report)
                except FeedUnavailable:
                    raise
                except Exception as e:
                    report.errors += 1
                    logger.error(f"Error tracking {token.mint}: {e}")
        finally:
            self.store.persist()

        logger.info(
            f"Tracking complete: {report.checked} priced, {report.skipped} skipped, "
            f"{len(report.triggered)} triggered, {report.errors} errors"
        )
        return report

    async def _fetch_price(self, mint: str) -> Optional[float]:
        """Current price for a mint, or None if there is no usable sample."""
        try:
            price = await asyncio.wait_for(
                self.price_feed.fetch_price(mint),
                timeout=self.price_timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Skipping {mint} - price request timed out")
            return None
        except PriceUnavailable as e:
            logger.warning(f"Skipping {mint} - {e}")
            return None

        if not is_valid_price(price):
            logger.warning(f"Skipping {mint} - invalid price {price!r}")
            return None
        return float(price)

    async def _track_token(self, token: TrackedToken, report: TrackingReport):
        price = await self._fetch_price(token.mint)
        if price is None:
            report.skipped += 1
            return

        observed_at = self.clock()
        updated = self.store.record_price(token.mint, price, observed_at)
        if updated is None:
            # Trimmed by a concurrent persist
            logger.debug(f"{token.mint} left the watchlist mid-cycle")
            return
        report.checked += 1

        gain = updated.gain_pct(price)
        if gain is not None and gain >= self.gain_trigger_pct:
            logger.info(f"{updated.name} gained {gain:.2f}% ({updated.mint})")
            await self._trigger(updated, price, gain, observed_at)
            report.triggered.append(updated.mint)

        if self.history_db:
            self.history_db.record_snapshot(
                token_mint=updated.mint,
                name=updated.name,
                price=price,
                initial_price=updated.initial_price,
                gain_pct=gain,
                observed_at=observed_at,
            )

    async def _trigger(self, token: TrackedToken, price: float, gain: float, observed_at: datetime):
        result = DispatchResult.failed("not sent")
        try:
            result = await self._dispatch(token, price)
        finally:
            self.store.retire(token.mint)

        if self.history_db:
            try:
                self.history_db.log_trigger(
                    token_mint=token.mint,
                    name=token.name,
                    initial_price=token.initial_price,
                    trigger_price=price,
                    gain_pct=gain,
                    dispatched=result.ok,
                    detail=result.error,
                    triggered_at=observed_at,
                )
            except Exception as e:
                logger.error(f"Failed to log trigger for {token.mint}: {e}")

    async def _dispatch(self, token: TrackedToken, price: float) -> DispatchResult:
        """Run the blocking dispatcher off the event loop, bounded by a timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.dispatcher.send, token, price),
                timeout=self.dispatch_timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.error(f"Trade dispatch for {token.mint} timed out")
            return DispatchResult.failed("timeout")
        except Exception as e:
            logger.error(f"Trade dispatch for {token.mint} failed: {e}")
            return DispatchResult.failed(str(e))
