from .watchlist_store import WatchlistStore
from .history_db import HistoryDB

__all__ = ["WatchlistStore", "HistoryDB"]
