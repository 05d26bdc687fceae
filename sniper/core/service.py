"""
Sniper Service

Wires the watchlist, feeds, dispatcher and history database together and runs
the discovery and tracking loops side by side until a shutdown signal.
"""

import asyncio
import logging
import signal
from contextlib import AsyncExitStack
from typing import List, Optional

from ..alerts.dispatcher import TradeDispatcher
from ..alerts.telegram import TelegramAlerts
from ..api.feeds import PriceFeed, SourceFeed
from ..api.pumpfun import PumpFunBrowser, PumpFunPriceClient
from ..config import Config, config as default_config
from ..db.history_db import HistoryDB
from ..db.watchlist_store import WatchlistStore
from .discovery import DiscoveryLoop
from .scheduler import PeriodicLoop
from .tracker import TrackingLoop

logger = logging.getLogger(__name__)


class SniperService:
    """
    Owns the single WatchlistStore shared by both loops.

    The browser and HTTP sessions are acquired in one AsyncExitStack, so they
    are released on normal exit, on error and on SIGINT/SIGTERM alike. Feeds
    and collaborators can be injected; anything not given is built from config.
    """

    def __init__(
        self,
        cfg: Config = None,
        store: WatchlistStore = None,
        history_db: HistoryDB = None,
        dispatcher: TradeDispatcher = None,
        source_feed: Optional[SourceFeed] = None,
        price_feed: Optional[PriceFeed] = None,
        dry_run: bool = False,
    ):
        self.config = cfg or default_config
        self.dry_run = dry_run

        self.store = store or WatchlistStore(
            path=self.config.watchlist_path,
            retired_path=self.config.retired_path,
            max_tracked_tokens=self.config.max_tracked_tokens,
            persistence_cap=self.config.persistence_cap,
        )
        self.history_db = history_db or HistoryDB(self.config.history_db_path)
        self.dispatcher = dispatcher or TradeDispatcher(
            endpoint=self.config.trade_endpoint,
            timeout_sec=self.config.dispatch_timeout_sec,
            telegram_alerts=TelegramAlerts.from_env(dry_run=dry_run),
            dry_run=dry_run,
        )
        self.source_feed = source_feed
        self.price_feed = price_feed

        self._loops: List[PeriodicLoop] = []
        self._stop_requested = False

    def stop(self):
        """Stop both loops; sessions are released once they return."""
        if not self._stop_requested:
            logger.info("Shutdown signal received, stopping sniper...")
        self._stop_requested = True
        for loop in self._loops:
            loop.stop()

    def _install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no add_signal_handler
                signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(self.stop))

    def _remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                signal.signal(sig, signal.SIG_DFL)

    def build_loops(self, source: SourceFeed, price: PriceFeed) -> List[PeriodicLoop]:
        cfg = self.config
        discovery = DiscoveryLoop(
            store=self.store,
            source=source,
            interval_sec=cfg.scrape_interval_sec,
            error_interval_sec=cfg.error_cooldown_sec,
            feed_timeout_sec=cfg.feed_timeout_sec,
            entry_criteria=cfg.entry_criteria,
            enforce_entry_criteria=cfg.enforce_entry_criteria,
        )
        tracking = TrackingLoop(
            store=self.store,
            price_feed=price,
            dispatcher=self.dispatcher,
            history_db=self.history_db,
            interval_sec=cfg.track_interval_sec,
            error_interval_sec=cfg.error_cooldown_sec,
            gain_trigger_pct=cfg.gain_trigger_pct,
            price_timeout_sec=cfg.price_timeout_sec,
            dispatch_timeout_sec=cfg.dispatch_timeout_sec,
        )
        return [discovery, tracking]

    async def run(self, max_cycles: Optional[int] = None):
        """
        Run both loops until stopped.

        Args:
            max_cycles: Stop each loop after this many cycles (None = forever)
        """
        logger.info("Starting sniper...")
        self.store.load()

        async with AsyncExitStack() as stack:
            source = self.source_feed
            if source is None:
                source = await stack.enter_async_context(PumpFunBrowser(
                    scan_url=self.config.scan_url,
                    headless=self.config.headless,
                    timeout_sec=self.config.feed_timeout_sec,
                ))

            price = self.price_feed
            if price is None:
                price = await stack.enter_async_context(PumpFunPriceClient(
                    base_url=self.config.price_api_url,
                    timeout_sec=self.config.price_timeout_sec,
                ))

            self._loops = self.build_loops(source, price)
            if self._stop_requested:
                return

            self._install_signal_handlers()
            try:
                await asyncio.gather(*(loop.run(max_cycles=max_cycles) for loop in self._loops))
            finally:
                self._remove_signal_handlers()
                try:
                    self.store.persist()
                except Exception as e:
                    logger.error(f"Final watchlist save failed: {e}")

        logger.info(f"Sniper stopped ({len(self.store)} tokens tracked)")
