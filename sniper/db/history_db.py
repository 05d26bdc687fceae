"""
History Database
================

Append-only SQLite storage for:
- Price snapshots (one row per tracked token per tracking cycle)
- Trigger log (every token that crossed the gain threshold)

Nothing in the tracking loop deletes from these tables.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from ..config import config

logger = logging.getLogger(__name__)


class HistoryDB:
    """
    SQLite store for the tracking audit trail.

    WAL mode so the snapshot browser can read while the tracker writes.
    """

    def __init__(self, db_path: Path = None, read_only: bool = False):
        """
        Args:
            db_path: SQLite file (default: config.history_db_path)
            read_only: Open an existing database without touching its schema
                or journal mode; writes raise sqlite3.OperationalError
        """
        self.db_path = Path(db_path or config.history_db_path)
        self.read_only = read_only
        if read_only:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        logger.info(f"History database initialized: {self.db_path}")

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper cleanup."""
        if self.read_only:
            conn = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True, timeout=30)
        else:
            conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        with self._get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS price_snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token_mint TEXT NOT NULL,
                    name TEXT,
                    price REAL NOT NULL,
                    initial_price REAL,
                    gain_pct REAL,
                    observed_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_price_snapshots_mint_time
                ON price_snapshots(token_mint, observed_at)
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS trigger_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    token_mint TEXT NOT NULL,
                    name TEXT,
                    initial_price REAL,
                    trigger_price REAL NOT NULL,
                    gain_pct REAL NOT NULL,
                    dispatched INTEGER NOT NULL,
                    detail TEXT,
                    triggered_at TEXT NOT NULL
                )
            """)

    # =========================================================================
    # Price Snapshots
    # =========================================================================

    def record_snapshot(
        self,
        token_mint: str,
        name: str,
        price: float,
        initial_price: Optional[float],
        gain_pct: Optional[float],
        observed_at: datetime,
    ):
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO price_snapshots
                (token_mint, name, price, initial_price, gain_pct, observed_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (token_mint, name, price, initial_price, gain_pct, observed_at.isoformat()))

    def get_history(self, token_mint: str, hours: Optional[int] = None) -> List[dict]:
        """
        Get price snapshots for a token, oldest first.

        Args:
            token_mint: Token mint address
            hours: Only return the last N hours (None = everything)
        """
        query = "SELECT * FROM price_snapshots WHERE token_mint = ?"
        params: list = [token_mint]
        if hours is not None:
            cutoff = (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()
            query += " AND observed_at > ?"
            params.append(cutoff)
        query += " ORDER BY observed_at ASC, id ASC"

        with self._get_connection() as conn:
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    # =========================================================================
    # Trigger Log
    # =========================================================================

    def log_trigger(
        self,
        token_mint: str,
        name: str,
        initial_price: Optional[float],
        trigger_price: float,
        gain_pct: float,
        dispatched: bool,
        detail: Optional[str] = None,
        triggered_at: Optional[datetime] = None,
    ):
        triggered_at = triggered_at or datetime.now(timezone.utc)

        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO trigger_log
                (token_mint, name, initial_price, trigger_price, gain_pct,
                 dispatched, detail, triggered_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                token_mint, name, initial_price, trigger_price, gain_pct,
                1 if dispatched else 0, detail, triggered_at.isoformat(),
            ))

    def get_recent_triggers(self, hours: int = 24) -> List[dict]:
        cutoff = (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()

        with self._get_connection() as conn:
            cursor = conn.execute("""
                SELECT * FROM trigger_log
                WHERE triggered_at > ?
                ORDER BY triggered_at DESC
            """, (cutoff,))
            return [dict(row) for row in cursor.fetchall()]
