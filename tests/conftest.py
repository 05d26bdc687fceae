"""Shared test fixtures."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure the project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sniper.alerts.dispatcher import DispatchResult
from sniper.db import HistoryDB, WatchlistStore
from sniper.errors import PriceUnavailable
from sniper.models import RawListing, TrackedToken

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────

def make_token(mint: str = "MintA", created_offset: int = 0, **kwargs) -> TrackedToken:
    defaults = dict(
        mint=mint,
        name=f"Token {mint}",
        description="",
        market_cap=1000.0,
        volume=100.0,
        holders=10,
        created_at=T0 + timedelta(seconds=created_offset),
        initial_price=None,
        history=[],
    )
    defaults.update(kwargs)
    return TrackedToken(**defaults)


def make_listing(raw_id: str = "MintA", **kwargs) -> RawListing:
    defaults = dict(
        raw_id=raw_id,
        name=f"Token {raw_id}",
        description="desc",
        market_cap=1000.0,
        volume=100.0,
        holders=10,
        age_text="1m",
    )
    defaults.update(kwargs)
    return RawListing(**defaults)


class FakeSource:
    """Source feed returning queued batches; an Exception in the queue is raised."""

    def __init__(self, *batches):
        self.batches = list(batches)
        self.calls = 0

    async def fetch_listings(self):
        self.calls += 1
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch


class FakePriceFeed:
    """Price feed backed by a dict; an Exception value is raised for that mint."""

    def __init__(self, prices=None):
        self.prices = dict(prices or {})
        self.calls = []

    async def fetch_price(self, mint):
        self.calls.append(mint)
        if mint not in self.prices:
            raise PriceUnavailable(mint, "not listed")
        value = self.prices[mint]
        if isinstance(value, Exception):
            raise value
        return value


class RecordingDispatcher:
    def __init__(self, ok: bool = True, raises: Exception = None):
        self.ok = ok
        self.raises = raises
        self.calls = []

    def send(self, token, trigger_price):
        self.calls.append((token, trigger_price))
        if self.raises:
            raise self.raises
        if self.ok:
            return DispatchResult(ok=True, status_code=200)
        return DispatchResult.failed("HTTP 500", status_code=500)


class FixedClock:
    def __init__(self, start=T0, step_seconds: int = 1):
        self.now = start
        self.step = timedelta(seconds=step_seconds)

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


# ── Fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def store_factory(tmp_path):
    def _make(max_tracked_tokens: int = 500, persistence_cap: int = 300) -> WatchlistStore:
        return WatchlistStore(
            path=tmp_path / "watchlist.json",
            retired_path=tmp_path / "retired.json",
            max_tracked_tokens=max_tracked_tokens,
            persistence_cap=persistence_cap,
        )
    return _make


@pytest.fixture
def store(store_factory) -> WatchlistStore:
    return store_factory()


@pytest.fixture
def history_db(tmp_path) -> HistoryDB:
    return HistoryDB(tmp_path / "history.db")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()

