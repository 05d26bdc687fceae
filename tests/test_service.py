"""End-to-end test of SniperService with injected feeds."""

from __future__ import annotations

import pytest

from conftest import FakePriceFeed, FakeSource, RecordingDispatcher, make_listing, make_token
from sniper.config import Config
from sniper.core import LoopState, SniperService


@pytest.mark.asyncio
async def test_single_cycle_discovers_tracks_and_triggers(tmp_path, store_factory, history_db):
    cfg = Config(data_dir=tmp_path)

    seeded = store_factory()
    seeded.try_admit(make_token("Old", initial_price=1.0))
    seeded.persist()

    store = store_factory()
    dispatcher = RecordingDispatcher()
    source = FakeSource([make_listing("New-latest")])
    service = SniperService(
        cfg=cfg,
        store=store,
        history_db=history_db,
        dispatcher=dispatcher,
        source_feed=source,
        price_feed=FakePriceFeed({"Old": 2.5}),
    )

    await service.run(max_cycles=1)

    assert source.calls == 1
    assert [(token.mint, price) for token, price in dispatcher.calls] == [("Old", 2.5)]
    assert all(loop.state == LoopState.STOPPED for loop in service._loops)

    reloaded = store_factory()
    reloaded.load()
    assert "New" in reloaded
    assert "Old" not in reloaded
    assert reloaded.is_retired("Old")


@pytest.mark.asyncio
async def test_stop_before_run_exits_without_cycles(tmp_path, store_factory, history_db):
    source = FakeSource([make_listing("A")])
    service = SniperService(
        cfg=Config(data_dir=tmp_path),
        store=store_factory(),
        history_db=history_db,
        dispatcher=RecordingDispatcher(),
        source_feed=source,
        price_feed=FakePriceFeed(),
    )
    service.stop()

    await service.run()

    assert source.calls == 0
