"""Tests for the pump.fun parsing helpers."""

from __future__ import annotations

import pytest

from sniper.api import parse_compact_number, parse_listing, price_from_coin
from sniper.api.pumpfun import parse_holders
from sniper.errors import MalformedRecord, PriceUnavailable


@pytest.mark.parametrize("text, expected", [
    ("4.2K", 4_200),
    ("$4.2K", 4_200),
    ("1.5M", 1_500_000),
    ("2B", 2_000_000_000),
    ("12,345", 12_345),
    ("950", 950),
    ("0", 0),
    ("", 0),
    (None, 0),
    ("3.1k", 3_100),
])
def test_parse_compact_number(text, expected):
    assert parse_compact_number(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["abc", "K", "1.2.3M", "inf"])
def test_parse_compact_number_rejects_garbage(text):
    with pytest.raises(MalformedRecord):
        parse_compact_number(text)


@pytest.mark.parametrize("text, expected", [
    ("12", 12),
    ("1,204", 1_204),
    ("  7 holders", 7),
    ("", 0),
    (None, 0),
    ("n/a", 0),
])
def test_parse_holders(text, expected):
    assert parse_holders(text) == expected


def test_parse_listing_reads_card():
    row = {
        "rawId": "AbCdEf-latest",
        "name": "Frog",
        "description": "ribbit",
        "age": "2m",
        "volume": "1.2K",
        "marketCap": "4.5K",
        "holders": "17",
    }
    listing = parse_listing(row)
    assert listing.raw_id == "AbCdEf-latest"
    assert listing.name == "Frog"
    assert listing.market_cap == pytest.approx(4_500)
    assert listing.volume == pytest.approx(1_200)
    assert listing.holders == 17
    assert listing.age_text == "2m"


def test_parse_listing_defaults_missing_numbers():
    listing = parse_listing({"rawId": "Abc"})
    assert listing.market_cap == 0
    assert listing.volume == 0
    assert listing.holders == 0
    assert listing.name == ""


@pytest.mark.parametrize("row", [
    {},
    {"rawId": "   "},
    {"rawId": "Abc", "marketCap": "lots"},
    ["not", "a", "dict"],
])
def test_parse_listing_rejects_malformed(row):
    with pytest.raises(MalformedRecord):
        parse_listing(row)


def test_price_from_coin_divides_by_supply():
    assert price_from_coin("Abc", {"usd_market_cap": 5_000}) == pytest.approx(5e-6)


@pytest.mark.parametrize("data", [
    None,
    [],
    {},
    {"usd_market_cap": None},
    {"usd_market_cap": "5000"},
    {"usd_market_cap": 0},
    {"usd_market_cap": -10},
    {"usd_market_cap": float("nan")},
    {"usd_market_cap": True},
])
def test_price_from_coin_rejects_unusable_data(data):
    with pytest.raises(PriceUnavailable) as exc:
        price_from_coin("Abc", data)
    assert exc.value.mint == "Abc"
