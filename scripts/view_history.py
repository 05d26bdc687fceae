#!/usr/bin/env python3
"""
View the sniper's stored data.

Usage:
    python3 scripts/view_history.py watchlist           # Tokens currently tracked
    python3 scripts/view_history.py triggers            # Triggers in the last 24h
    python3 scripts/view_history.py triggers --hours 72
    python3 scripts/view_history.py token <mint>        # Price history of one token
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sniper.config import Config
from sniper.db import HistoryDB, WatchlistStore


def print_header(title: str):
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80)


def format_price(val):
    if val is None:
        return "NULL"
    return f"{val:.10f}"


def view_watchlist(cfg: Config, limit: int = 50):
    print_header("WATCHLIST")

    store = WatchlistStore(
        path=cfg.watchlist_path,
        retired_path=cfg.retired_path,
        max_tracked_tokens=cfg.max_tracked_tokens,
        persistence_cap=cfg.persistence_cap,
    )
    store.load()
    tokens = sorted(store.all(), key=lambda t: t.created_at, reverse=True)

    print(f"Snapshot: {cfg.watchlist_path}")
    print(f"Tracked: {len(tokens)} / {cfg.max_tracked_tokens}")

    if not tokens:
        return

    print(f"\n{'Mint':<46} {'Name':<20} {'Initial':>14} {'Last':>14} {'Gain':>8} {'Samples':>8}")
    print("-" * 115)
    for token in tokens[:limit]:
        last = token.history[-1].price if token.history else None
        gain = token.gain_pct(last) if last is not None else None
        gain_str = f"{gain:+.1f}%" if gain is not None else "-"
        print(
            f"{token.mint:<46} {token.name[:20]:<20} {format_price(token.initial_price):>14} "
            f"{format_price(last):>14} {gain_str:>8} {len(token.history):>8}"
        )
    if len(tokens) > limit:
        print(f"... {len(tokens) - limit} more")


def view_triggers(cfg: Config, hours: int):
    print_header(f"TRIGGERS (last {hours}h)")

    if not cfg.history_db_path.exists():
        print(f"Database not found: {cfg.history_db_path}")
        return

    triggers = HistoryDB(cfg.history_db_path, read_only=True).get_recent_triggers(hours=hours)
    if not triggers:
        print("No triggers")
        return

    print(f"\n{'Time':<26} {'Mint':<46} {'Gain':>9} {'Trade':<8} Detail")
    print("-" * 110)
    for row in triggers:
        status = "posted" if row["dispatched"] else "FAILED"
        print(
            f"{row['triggered_at'][:25]:<26} {row['token_mint']:<46} "
            f"{row['gain_pct']:>+8.1f}% {status:<8} {row['detail'] or ''}"
        )


def view_token(cfg: Config, mint: str, hours: int = None):
    print_header(f"PRICE HISTORY {mint}")

    if not cfg.history_db_path.exists():
        print(f"Database not found: {cfg.history_db_path}")
        return

    rows = HistoryDB(cfg.history_db_path, read_only=True).get_history(mint, hours=hours)
    if not rows:
        print("No snapshots")
        return

    print(f"\n{'Time':<26} {'Price':>16} {'Gain':>9}")
    print("-" * 53)
    for row in rows:
        gain = f"{row['gain_pct']:+.1f}%" if row["gain_pct"] is not None else "-"
        print(f"{row['observed_at'][:25]:<26} {format_price(row['price']):>16} {gain:>9}")


def main():
    parser = argparse.ArgumentParser(description="View sniper data")
    subparsers = parser.add_subparsers(dest="command", required=True)

    watchlist_parser = subparsers.add_parser("watchlist", help="Show tracked tokens")
    watchlist_parser.add_argument("--limit", type=int, default=50)

    triggers_parser = subparsers.add_parser("triggers", help="Show recent gain triggers")
    triggers_parser.add_argument("--hours", type=int, default=24)

    token_parser = subparsers.add_parser("token", help="Show price history for one token")
    token_parser.add_argument("mint")
    token_parser.add_argument("--hours", type=int, default=None)

    args = parser.parse_args()

    try:
        cfg = Config.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        sys.exit(2)

    if args.command == "watchlist":
        view_watchlist(cfg, limit=args.limit)
    elif args.command == "triggers":
        view_triggers(cfg, hours=args.hours)
    elif args.command == "token":
        view_token(cfg, args.mint, hours=args.hours)


if __name__ == "__main__":
    main()
