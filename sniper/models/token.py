"""
Token Models
============

Dataclasses for listings scraped from pump.fun and the tokens we track.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..errors import MalformedRecord


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _first(data: Dict[str, Any], *keys: str) -> Any:
    """Value of the first key present; snapshots may use snake_case or camelCase."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


@dataclass
class RawListing:
    """A listing as it appears on the pump.fun scan page."""
    raw_id: str  # data-coin-mint attribute, may carry -latest/-featured
    name: str
    description: str
    market_cap: float
    volume: float
    holders: int
    age_text: str = ""


@dataclass
class PricePoint:
    """One price observation."""
    price: float
    observed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"price": self.price, "time": self.observed_at.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricePoint":
        return cls(price=float(data["price"]), observed_at=_parse_time(data["time"]))


@dataclass
class TrackedToken:
    """
    A token on the watchlist.

    The mint is the dedup key. created_at orders retention, initial_price is the
    baseline for gain and never changes once set.
    """
    mint: str
    name: str
    description: str
    market_cap: float
    volume: float
    holders: int
    created_at: datetime
    age_text: str = ""
    initial_price: Optional[float] = None
    history: List[PricePoint] = field(default_factory=list)

    def gain_pct(self, price: float) -> Optional[float]:
        """Percentage gain of price over initial_price, None without a baseline."""
        if not self.initial_price:
            return None
        return (price - self.initial_price) / self.initial_price * 100

    def copy(self) -> "TrackedToken":
        return copy.deepcopy(self)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot representation."""
        return {
            "mint": self.mint,
            "name": self.name,
            "description": self.description,
            "market_cap": self.market_cap,
            "volume": self.volume,
            "holders": self.holders,
            "age_text": self.age_text,
            "created_at": self.created_at.isoformat(),
            "initial_price": self.initial_price,
            "history": [point.to_dict() for point in self.history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackedToken":
        """
        Rebuild a token from its snapshot representation.

        Reads the snake_case keys written by to_dict as well as the camelCase
        keys (address, createdAt, initialPrice, ...) of older snapshots.

        Raises:
            MalformedRecord: If required fields are missing or unparseable
        """
        try:
            mint = _first(data, "mint", "address")
            if not mint:
                raise KeyError("mint")
            initial_price = _first(data, "initial_price", "initialPrice")
            # A zero baseline (no market cap at discovery) is the same as none
            if initial_price is not None and float(initial_price) <= 0:
                initial_price = None
            created_at = _first(data, "created_at", "createdAt", "entryTime")
            return cls(
                mint=str(mint),
                name=str(data.get("name", "")),
                description=str(data.get("description", "")),
                market_cap=float(_first(data, "market_cap", "marketCap") or 0),
                volume=float(data.get("volume") or 0),
                holders=int(data.get("holders") or 0),
                age_text=str(_first(data, "age_text", "ageText") or ""),
                created_at=_parse_time(created_at),
                initial_price=float(initial_price) if initial_price is not None else None,
                history=[PricePoint.from_dict(p) for p in data.get("history", [])],
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedRecord(f"Bad snapshot entry: {e}") from e

    def to_payload(self, current_price: float) -> Dict[str, Any]:
        """Body posted to the trade endpoint."""
        created = self.created_at.isoformat()
        return {
            "name": self.name,
            "address": self.mint,
            "description": self.description,
            "marketCap": self.market_cap,
            "volume": self.volume,
            "holders": self.holders,
            "ageText": self.age_text,
            "createdAt": created,
            "initialPrice": self.initial_price,
            "entryTime": created,
            "history": [point.to_dict() for point in self.history],
            "currentPrice": current_price,
        }
