#!/usr/bin/env python3
"""
pump.fun Sniper - CLI Entry Point
=================================

Runs the discovery and tracking loops:
    - Discovery: reads new listings from the pump.fun scan page every
      SCRAPE_INTERVAL_MS and adds them to the watchlist (capped)
    - Tracking: polls each watched token's price every TRACK_INTERVAL_MS and
      posts a trade when it gains GAIN_TRIGGER_PCT, then retires it

Usage:
    # Start sniper
    python scripts/run_sniper.py

    # Dry run (log trades instead of posting them)
    python scripts/run_sniper.py --dry-run

    # One cycle of each loop, then exit
    python scripts/run_sniper.py --once

    # Test Telegram configuration
    python scripts/run_sniper.py --test-telegram
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sniper.alerts import send_test_alert
from sniper.config import Config
from sniper.core import SniperService
from sniper.db import WatchlistStore

LOG_LEVEL = "INFO"
LOG_FILE = project_root / "logs" / "sniper.log"


def setup_logging(log_level: str = LOG_LEVEL, log_file: Path = LOG_FILE):
    """Configure logging to a date-stamped file and stdout."""
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # e.g. logs/sniper_2026-01-18.log
    date_str = datetime.now().strftime("%Y-%m-%d")
    dated_log_file = log_file.parent / f"{log_file.stem}_{date_str}{log_file.suffix}"

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(dated_log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from HTTP libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    root_logger.info(f"Logging to: {dated_log_file}")


def main():
    parser = argparse.ArgumentParser(
        description='pump.fun Sniper',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration is read from the environment (or .env):
  SCRAPE_INTERVAL_MS, TRACK_INTERVAL_MS, MAX_TRACKED_TOKENS, PERSISTENCE_CAP,
  GAIN_TRIGGER_PCT, ENTRY_MIN_MARKET_CAP, ENTRY_MAX_MARKET_CAP,
  ENTRY_MAX_HOLDERS, ENTRY_MIN_VOLUME, ENFORCE_ENTRY_CRITERIA, TRADE_ENDPOINT

Examples:
  python scripts/run_sniper.py                   # Start sniper
  python scripts/run_sniper.py --dry-run         # Log trades only
  python scripts/run_sniper.py --once            # One cycle per loop
  python scripts/run_sniper.py --clear-watchlist # Forget all tokens
        """
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Log trade payloads instead of posting them'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='Run one discovery cycle and one tracking cycle, then exit'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=LOG_LEVEL,
        help=f'Log level (default: {LOG_LEVEL})'
    )

    parser.add_argument(
        '--clear-watchlist',
        action='store_true',
        help='Clear the watchlist and the retired-token ledger, then exit'
    )

    parser.add_argument(
        '--test-telegram',
        action='store_true',
        help='Send a test alert to verify Telegram configuration'
    )

    args = parser.parse_args()

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        cfg = Config.from_env()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    if args.test_telegram:
        print("Testing Telegram configuration...")
        if send_test_alert(dry_run=args.dry_run):
            print("Test alert sent successfully!")
            sys.exit(0)
        print("Failed to send test alert. Check your TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID.")
        sys.exit(1)

    if args.clear_watchlist:
        store = WatchlistStore(
            path=cfg.watchlist_path,
            retired_path=cfg.retired_path,
            max_tracked_tokens=cfg.max_tracked_tokens,
            persistence_cap=cfg.persistence_cap,
        )
        store.clear()
        print("Watchlist cleared.")
        sys.exit(0)

    print("\n" + "=" * 60)
    print("PUMP.FUN SNIPER")
    print("=" * 60)
    print(f"Scrape interval:   {cfg.scrape_interval_sec:.0f}s")
    print(f"Track interval:    {cfg.track_interval_sec:.0f}s")
    print(f"Max tracked:       {cfg.max_tracked_tokens} (snapshot keeps {cfg.persistence_cap})")
    print(f"Gain trigger:      {cfg.gain_trigger_pct:.0f}%")
    print(f"Entry criteria:    {'enforced' if cfg.enforce_entry_criteria else 'not enforced'}")
    print(f"Trade endpoint:    {cfg.trade_endpoint}")
    print(f"Dry run:           {args.dry_run}")
    print("=" * 60)

    try:
        service = SniperService(cfg=cfg, dry_run=args.dry_run)
        print("\nStarting sniper...")
        print("Press Ctrl+C to stop\n")
        asyncio.run(service.run(max_cycles=1 if args.once else None))
    except KeyboardInterrupt:
        print("\n\nSniper stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Sniper service error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
