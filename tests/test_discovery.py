"""Tests for sniper.core.discovery."""

from __future__ import annotations

import asyncio
import json

import pytest

from conftest import T0, FakeSource, FixedClock, make_listing, make_token
from sniper.config import EntryCriteria
from sniper.core import DiscoveryLoop, LoopState, build_token, canonical_mint
from sniper.errors import FeedUnavailable, MalformedRecord


def make_loop(store, source, **kwargs):
    defaults = dict(
        interval_sec=60,
        error_interval_sec=30,
        feed_timeout_sec=5,
        enforce_entry_criteria=False,
        clock=FixedClock(),
    )
    defaults.update(kwargs)
    return DiscoveryLoop(store=store, source=source, **defaults)


# ── canonical_mint / build_token ─────────────────────────────────────

@pytest.mark.parametrize("raw, expected", [
    ("AbC123", "AbC123"),
    ("AbC123-latest", "AbC123"),
    ("AbC123-featured", "AbC123"),
    ("AbC123-featured-latest", "AbC123"),
    ("  AbC123  ", "AbC123"),
])
def test_canonical_mint_strips_display_suffixes(raw, expected):
    assert canonical_mint(raw) == expected


def test_build_token_derives_initial_price_from_market_cap():
    token = build_token(make_listing("MintA-latest", market_cap=5000.0), T0)
    assert token.mint == "MintA"
    assert token.initial_price == pytest.approx(5000.0 / 1_000_000_000)
    assert token.created_at == T0
    assert token.history == []


def test_build_token_without_market_cap_has_no_baseline():
    token = build_token(make_listing("MintA", market_cap=0.0), T0)
    assert token.initial_price is None


@pytest.mark.parametrize("overrides", [
    {"raw_id": ""},
    {"raw_id": "-latest"},
    {"market_cap": float("nan")},
    {"volume": -1.0},
])
def test_build_token_rejects_malformed_listing(overrides):
    raw_id = overrides.pop("raw_id", "MintA")
    with pytest.raises(MalformedRecord):
        build_token(make_listing(raw_id, **overrides), T0)


# ── Cycle behaviour ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_cycle_admits_new_listings_and_persists(store):
    loop = make_loop(store, FakeSource([make_listing("A"), make_listing("B-latest")]))

    report = await loop.run_cycle()

    assert report.seen == 2
    assert report.admitted == 2
    assert {t.mint for t in store.all()} == {"A", "B"}
    on_disk = json.loads(store.path.read_text())
    assert set(on_disk) == {"A", "B"}


@pytest.mark.asyncio
async def test_cycle_stops_admitting_at_capacity(store_factory):
    store = store_factory(max_tracked_tokens=2)
    source = FakeSource(
        [make_listing("X"), make_listing("Y")],
        [make_listing("Z")],
    )
    loop = make_loop(store, source)

    await loop.run_cycle()
    report = await loop.run_cycle()

    assert report.cap_reached is True
    assert report.admitted == 0
    assert {t.mint for t in store.all()} == {"X", "Y"}


@pytest.mark.asyncio
async def test_cycle_ignores_already_tracked_mint(store):
    store.try_admit(make_token("A", name="original"))
    loop = make_loop(store, FakeSource([make_listing("A-featured", name="again")]))

    report = await loop.run_cycle()

    assert report.duplicates == 1
    assert report.admitted == 0
    assert store.get("A").name == "original"


@pytest.mark.asyncio
async def test_cycle_ignores_retired_mint(store):
    store.try_admit(make_token("A"))
    store.retire("A")
    loop = make_loop(store, FakeSource([make_listing("A")]))

    report = await loop.run_cycle()

    assert report.admitted == 0
    assert "A" not in store


@pytest.mark.asyncio
async def test_malformed_listing_does_not_block_others(store):
    listings = [
        make_listing("A"),
        make_listing("", name="no mint"),
        make_listing("C", market_cap=float("inf")),
        make_listing("D"),
    ]
    loop = make_loop(store, FakeSource(listings))

    report = await loop.run_cycle()

    assert report.malformed == 2
    assert report.admitted == 2
    assert {t.mint for t in store.all()} == {"A", "D"}


@pytest.mark.asyncio
async def test_entry_criteria_applied_when_enforced(store):
    listings = [
        make_listing("In", market_cap=1000.0, holders=10, volume=100.0),
        make_listing("TooBig", market_cap=10_000.0, holders=10, volume=100.0),
        make_listing("Crowded", market_cap=1000.0, holders=500, volume=100.0),
    ]
    loop = make_loop(
        store,
        FakeSource(listings),
        entry_criteria=EntryCriteria(),
        enforce_entry_criteria=True,
    )

    report = await loop.run_cycle()

    assert report.rejected == 2
    assert [t.mint for t in store.all()] == ["In"]


@pytest.mark.asyncio
async def test_entry_criteria_ignored_by_default(store):
    loop = make_loop(store, FakeSource([make_listing("TooBig", market_cap=10_000.0)]))
    report = await loop.run_cycle()
    assert report.admitted == 1


@pytest.mark.asyncio
async def test_created_at_comes_from_clock(store):
    loop = make_loop(store, FakeSource([make_listing("A"), make_listing("B")]))
    await loop.run_cycle()
    tokens = {t.mint: t for t in store.all()}
    assert tokens["A"].created_at < tokens["B"].created_at


# ── Failures ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_feed_failure_puts_loop_into_cool_down(store):
    source = FakeSource(FeedUnavailable("page did not load"), [make_listing("A")])
    loop = make_loop(store, source)

    assert await loop.run_once() is None
    assert loop.state == LoopState.COOLING_DOWN
    assert loop.next_delay() == 30
    assert len(store) == 0

    report = await loop.run_once()
    assert report.admitted == 1
    assert loop.state == LoopState.RUNNING
    assert loop.next_delay() == 60


@pytest.mark.asyncio
async def test_slow_feed_times_out_as_feed_unavailable(store):
    class SlowSource:
        async def fetch_listings(self):
            await asyncio.sleep(10)
            return []

    loop = make_loop(store, SlowSource(), feed_timeout_sec=0.01)

    with pytest.raises(FeedUnavailable):
        await loop.run_cycle()


@pytest.mark.asyncio
async def test_zero_cap_admits_nothing(store_factory):
    store = store_factory(max_tracked_tokens=0)
    loop = make_loop(store, FakeSource([make_listing("A"), make_listing("B")]))

    report = await loop.run_cycle()

    assert report.cap_reached is True
    assert report.admitted == 0
    assert len(store) == 0
