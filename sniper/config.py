"""
Configuration for the pump.fun Sniper

All settings in one place for easy tuning. Values can be overridden from the
environment (or a .env file at the project root), using the millisecond
interval names the scraper has always used.
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).parent.parent
_ENV_PATH = _PROJECT_ROOT / ".env"
if _ENV_PATH.exists():
    load_dotenv(_ENV_PATH)

# pump.fun tokens launch with a fixed supply, so price ~= market cap / supply
TOKEN_SUPPLY = 1_000_000_000


@dataclass
class EntryCriteria:
    """Bounds a freshly listed token must sit inside to be worth tracking."""
    min_market_cap: float = 300
    max_market_cap: float = 3000
    max_holders: int = 50
    min_volume: float = 50

    def matches(self, market_cap: float, holders: int, volume: float) -> bool:
        return (
            self.min_market_cap <= market_cap <= self.max_market_cap
            and holders <= self.max_holders
            and volume >= self.min_volume
        )


@dataclass
class Config:
    """All configuration settings."""

    # -------------------------------------------------------------------------
    # Loop Timing (seconds)
    # -------------------------------------------------------------------------
    scrape_interval_sec: float = 60.0
    track_interval_sec: float = 60.0

    # Shorter sleep after a failed cycle
    error_cooldown_sec: float = 30.0

    # -------------------------------------------------------------------------
    # Watchlist Limits
    # -------------------------------------------------------------------------
    # Admission cap for the in-memory watchlist
    max_tracked_tokens: int = 500

    # Ordered-retention cap applied when the snapshot is written
    persistence_cap: int = 300

    # -------------------------------------------------------------------------
    # Trigger
    # -------------------------------------------------------------------------
    gain_trigger_pct: float = 100.0

    # -------------------------------------------------------------------------
    # Entry Criteria
    # -------------------------------------------------------------------------
    entry_criteria: EntryCriteria = field(default_factory=EntryCriteria)

    # Off by default: discovery admits every new listing
    enforce_entry_criteria: bool = False

    # -------------------------------------------------------------------------
    # External Endpoints
    # -------------------------------------------------------------------------
    trade_endpoint: str = "http://localhost:3000/trade"
    scan_url: str = "https://pump.fun/advanced/coin?scan=true"
    price_api_url: str = "https://frontend-api-v3.pump.fun"

    # Browser settings
    headless: bool = True

    # -------------------------------------------------------------------------
    # Timeouts (seconds)
    # -------------------------------------------------------------------------
    feed_timeout_sec: float = 60.0
    price_timeout_sec: float = 15.0
    dispatch_timeout_sec: float = 10.0

    # -------------------------------------------------------------------------
    # Storage Paths
    # -------------------------------------------------------------------------
    data_dir: Path = field(default_factory=lambda: _PROJECT_ROOT / "data")

    @property
    def watchlist_path(self) -> Path:
        return self.data_dir / "watchlist.json"

    @property
    def retired_path(self) -> Path:
        return self.data_dir / "retired.json"

    @property
    def history_db_path(self) -> Path:
        return self.data_dir / "history.db"

    # -------------------------------------------------------------------------
    # Telegram Settings (from environment)
    # -------------------------------------------------------------------------
    @property
    def telegram_bot_token(self) -> Optional[str]:
        return os.environ.get("TELEGRAM_BOT_TOKEN")

    @property
    def telegram_chat_id(self) -> Optional[str]:
        return os.environ.get("TELEGRAM_CHAT_ID")

    @classmethod
    def from_env(cls) -> "Config":
        """
        Build a Config from environment variables, falling back to defaults.

        Raises:
            ValueError: If a numeric variable cannot be parsed or is negative
        """
        defaults = cls()
        criteria = EntryCriteria(
            min_market_cap=_env_float("ENTRY_MIN_MARKET_CAP", defaults.entry_criteria.min_market_cap),
            max_market_cap=_env_float("ENTRY_MAX_MARKET_CAP", defaults.entry_criteria.max_market_cap),
            max_holders=_env_int("ENTRY_MAX_HOLDERS", defaults.entry_criteria.max_holders),
            min_volume=_env_float("ENTRY_MIN_VOLUME", defaults.entry_criteria.min_volume),
        )

        data_dir = os.environ.get("SNIPER_DATA_DIR")

        return cls(
            scrape_interval_sec=_env_ms("SCRAPE_INTERVAL_MS", defaults.scrape_interval_sec),
            track_interval_sec=_env_ms("TRACK_INTERVAL_MS", defaults.track_interval_sec),
            error_cooldown_sec=_env_ms("ERROR_COOLDOWN_MS", defaults.error_cooldown_sec),
            max_tracked_tokens=_env_int("MAX_TRACKED_TOKENS", defaults.max_tracked_tokens),
            persistence_cap=_env_int("PERSISTENCE_CAP", defaults.persistence_cap),
            gain_trigger_pct=_env_float("GAIN_TRIGGER_PCT", defaults.gain_trigger_pct),
            entry_criteria=criteria,
            enforce_entry_criteria=_env_bool("ENFORCE_ENTRY_CRITERIA", defaults.enforce_entry_criteria),
            trade_endpoint=os.environ.get("TRADE_ENDPOINT", defaults.trade_endpoint),
            headless=_env_bool("HEADLESS", defaults.headless),
            data_dir=Path(data_dir) if data_dir else defaults.data_dir,
        )


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a non-negative number, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value


def _env_ms(name: str, default_sec: float) -> float:
    """Read a millisecond interval and return it in seconds."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default_sec
    return _env_float(name, default_sec * 1000) / 1000


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Global config instance
config = Config()
