"""
pump.fun Sniper
===============

Discovers new pump.fun listings, tracks their price, and posts a trade once a
token doubles (configurable), retiring it from the watchlist.

Packages:
- api: pump.fun listing and price feeds
- db: watchlist store (JSON snapshot) and history database (SQLite)
- core: discovery loop, tracking loop, service
- alerts: trade dispatcher and Telegram alerts
"""

__version__ = "0.1.0"
