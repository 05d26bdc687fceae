"""Tests for sniper.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from sniper.config import Config, EntryCriteria

ENV_VARS = [
    "SCRAPE_INTERVAL_MS",
    "TRACK_INTERVAL_MS",
    "ERROR_COOLDOWN_MS",
    "MAX_TRACKED_TOKENS",
    "PERSISTENCE_CAP",
    "GAIN_TRIGGER_PCT",
    "ENTRY_MIN_MARKET_CAP",
    "ENTRY_MAX_MARKET_CAP",
    "ENTRY_MAX_HOLDERS",
    "ENTRY_MIN_VOLUME",
    "ENFORCE_ENTRY_CRITERIA",
    "TRADE_ENDPOINT",
    "SNIPER_DATA_DIR",
    "HEADLESS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = Config.from_env()
    assert cfg.scrape_interval_sec == 60
    assert cfg.track_interval_sec == 60
    assert cfg.max_tracked_tokens == 500
    assert cfg.persistence_cap == 300
    assert cfg.gain_trigger_pct == 100
    assert cfg.enforce_entry_criteria is False
    assert cfg.trade_endpoint == "http://localhost:3000/trade"


def test_intervals_are_read_in_milliseconds(monkeypatch):
    monkeypatch.setenv("SCRAPE_INTERVAL_MS", "30000")
    monkeypatch.setenv("TRACK_INTERVAL_MS", "1500")
    monkeypatch.setenv("ERROR_COOLDOWN_MS", "250")

    cfg = Config.from_env()

    assert cfg.scrape_interval_sec == 30
    assert cfg.track_interval_sec == 1.5
    assert cfg.error_cooldown_sec == 0.25


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MAX_TRACKED_TOKENS", "20")
    monkeypatch.setenv("PERSISTENCE_CAP", "10")
    monkeypatch.setenv("GAIN_TRIGGER_PCT", "50")
    monkeypatch.setenv("ENFORCE_ENTRY_CRITERIA", "true")
    monkeypatch.setenv("ENTRY_MAX_HOLDERS", "99")
    monkeypatch.setenv("TRADE_ENDPOINT", "http://bot:8080/buy")
    monkeypatch.setenv("SNIPER_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HEADLESS", "0")

    cfg = Config.from_env()

    assert cfg.max_tracked_tokens == 20
    assert cfg.persistence_cap == 10
    assert cfg.gain_trigger_pct == 50
    assert cfg.enforce_entry_criteria is True
    assert cfg.entry_criteria.max_holders == 99
    assert cfg.trade_endpoint == "http://bot:8080/buy"
    assert cfg.headless is False
    assert cfg.watchlist_path == Path(tmp_path) / "watchlist.json"
    assert cfg.history_db_path == Path(tmp_path) / "history.db"


@pytest.mark.parametrize("name, value", [
    ("SCRAPE_INTERVAL_MS", "soon"),
    ("MAX_TRACKED_TOKENS", "1.5"),
    ("GAIN_TRIGGER_PCT", "double"),
])
def test_bad_numbers_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        Config.from_env()


def test_entry_criteria_bounds():
    criteria = EntryCriteria()
    assert criteria.matches(market_cap=300, holders=50, volume=50)
    assert criteria.matches(market_cap=3000, holders=0, volume=1000)
    assert not criteria.matches(market_cap=299, holders=10, volume=100)
    assert not criteria.matches(market_cap=3001, holders=10, volume=100)
    assert not criteria.matches(market_cap=1000, holders=51, volume=100)
    assert not criteria.matches(market_cap=1000, holders=10, volume=49)


@pytest.mark.parametrize("name, value", [
    ("MAX_TRACKED_TOKENS", "-1"),
    ("PERSISTENCE_CAP", "-5"),
    ("SCRAPE_INTERVAL_MS", "-1000"),
    ("GAIN_TRIGGER_PCT", "-50"),
    ("ENTRY_MIN_VOLUME", "nan"),
])
def test_negative_or_non_finite_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        Config.from_env()


def test_zero_caps_are_kept(monkeypatch):
    monkeypatch.setenv("MAX_TRACKED_TOKENS", "0")
    monkeypatch.setenv("PERSISTENCE_CAP", "0")

    cfg = Config.from_env()

    assert cfg.max_tracked_tokens == 0
    assert cfg.persistence_cap == 0
