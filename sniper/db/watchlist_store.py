"""
Watchlist Store

Bounded, ordered registry of tracked tokens, persisted as a JSON snapshot.

- Admission is capped at max_tracked_tokens and deduplicated by mint.
- Every persist keeps only the newest persistence_cap tokens by created_at.
- Mints that already triggered are kept in a retired ledger so a rediscovery
  never brings them back.
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Set

from ..config import config
from ..errors import MalformedRecord, PersistenceFailure
from ..models import PricePoint, TrackedToken

logger = logging.getLogger(__name__)


class WatchlistStore:
    """
    In-memory watchlist with write-through JSON persistence.

    Shared by the discovery and tracking loops. Every mutation and every persist
    holds the same lock, so a persist from one loop never interleaves with an
    add or remove from the other. Readers get copies.
    """

    def __init__(
        self,
        path: Path = None,
        retired_path: Path = None,
        max_tracked_tokens: int = None,
        persistence_cap: int = None,
    ):
        self.path = Path(path or config.watchlist_path)
        self.retired_path = Path(retired_path or config.retired_path)
        self.max_tracked_tokens = config.max_tracked_tokens if max_tracked_tokens is None else max_tracked_tokens
        self.persistence_cap = config.persistence_cap if persistence_cap is None else persistence_cap

        self._tokens: Dict[str, TrackedToken] = {}  # mint -> token, insertion ordered
        self._retired: Set[str] = set()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def __contains__(self, mint: str) -> bool:
        with self._lock:
            return mint in self._tokens

    @property
    def is_full(self) -> bool:
        with self._lock:
            return len(self._tokens) >= self.max_tracked_tokens

    # -------------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------------

    def load(self):
        """
        Read the snapshot and retired ledger into memory.

        A missing or corrupt file leaves the store empty; this never raises.
        """
        tokens: Dict[str, TrackedToken] = {}
        raw = self._read_json(self.path, "watchlist")

        if raw is not None and not isinstance(raw, dict):
            logger.warning(f"Watchlist snapshot {self.path} is not a mapping, starting empty")
            raw = None

        skipped = 0
        for mint, entry in (raw or {}).items():
            try:
                if not isinstance(entry, dict):
                    raise MalformedRecord(f"expected object, got {type(entry).__name__}")
                token = TrackedToken.from_dict({"mint": mint, **entry})
            except MalformedRecord as e:
                skipped += 1
                logger.warning(f"Skipping watchlist entry {mint}: {e}")
                continue
            tokens[token.mint] = token

        retired_raw = self._read_json(self.retired_path, "retired ledger")
        if retired_raw is not None and not isinstance(retired_raw, list):
            logger.warning(f"Retired ledger {self.retired_path} is not a list, ignoring")
            retired_raw = None

        with self._lock:
            self._tokens = _keep_newest(tokens, self.max_tracked_tokens)
            self._retired = {str(m) for m in (retired_raw or [])}

        over_cap = len(tokens) - len(self._tokens)
        if over_cap:
            logger.warning(
                f"Snapshot held {len(tokens)} tokens, above max_tracked_tokens "
                f"({self.max_tracked_tokens}); dropped the {over_cap} oldest"
            )

        logger.info(
            f"Loaded {len(self._tokens)} tokens from {self.path} "
            f"({skipped} skipped, {len(self._retired)} retired)"
        )

    def _read_json(self, path: Path, label: str):
        if not path.exists():
            logger.info(f"No {label} at {path}, starting empty")
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load {label} from {path}: {e}")
            return None

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get(self, mint: str) -> Optional[TrackedToken]:
        with self._lock:
            token = self._tokens.get(mint)
            return token.copy() if token else None

    def all(self) -> List[TrackedToken]:
        """Copies of every tracked token, in insertion order."""
        with self._lock:
            return [token.copy() for token in self._tokens.values()]

    def is_retired(self, mint: str) -> bool:
        with self._lock:
            return mint in self._retired

    # -------------------------------------------------------------------------
    # Mutate
    # -------------------------------------------------------------------------

    def try_admit(self, token: TrackedToken) -> bool:
        """
        Admit a newly discovered token.

        Returns:
            True if the token was added, False if it is a duplicate, already
            retired, or the store is at capacity
        """
        with self._lock:
            if token.mint in self._tokens or token.mint in self._retired:
                return False
            if len(self._tokens) >= self.max_tracked_tokens:
                return False
            self._tokens[token.mint] = token.copy()
            return True

    def record_price(
        self,
        mint: str,
        price: float,
        observed_at: datetime,
    ) -> Optional[TrackedToken]:
        """
        Append a price to a token's history, filling initial_price if unset.

        Returns:
            Copy of the updated token, or None if the mint is no longer tracked
        """
        with self._lock:
            token = self._tokens.get(mint)
            if token is None:
                return None
            token.history.append(PricePoint(price=price, observed_at=observed_at))
            if token.initial_price is None:
                token.initial_price = price
            return token.copy()

    def remove(self, mint: str):
        """Remove a token. Removing an unknown mint is a no-op."""
        with self._lock:
            self._tokens.pop(mint, None)

    def retire(self, mint: str):
        """Remove a token that triggered and block it from readmission."""
        with self._lock:
            self._tokens.pop(mint, None)
            self._retired.add(mint)

    def clear(self):
        """Drop every token and the retired ledger, then persist."""
        with self._lock:
            self._tokens = {}
            self._retired = set()
            self.persist()
        logger.info("Watchlist cleared")

    # -------------------------------------------------------------------------
    # Persist
    # -------------------------------------------------------------------------

    def _trim(self):
        """Keep only the newest persistence_cap tokens by created_at."""
        before = len(self._tokens)
        self._tokens = _keep_newest(self._tokens, self.persistence_cap)
        dropped = before - len(self._tokens)
        if dropped:
            logger.debug(f"Ordered retention dropped {dropped} oldest tokens")

    def persist(self):
        """
        Trim to the persistence cap and rewrite the snapshot.

        Raises:
            PersistenceFailure: If the snapshot cannot be written
        """
        with self._lock:
            self._trim()
            snapshot = {}
            for mint, token in self._tokens.items():
                entry = token.to_dict()
                entry.pop("mint")
                snapshot[mint] = entry
            retired = sorted(self._retired)

            _write_json_atomic(self.path, snapshot)
            _write_json_atomic(self.retired_path, retired)

        logger.debug(f"Watchlist saved: {len(snapshot)} tokens")


def _keep_newest(tokens: Dict[str, TrackedToken], limit: int) -> Dict[str, TrackedToken]:
    """The newest `limit` tokens by created_at, in their original order."""
    if len(tokens) <= limit:
        return tokens
    # sorted() is stable, so equal created_at keep insertion order
    ordered = sorted(tokens.values(), key=lambda t: t.created_at)
    kept = {t.mint for t in ordered[-limit:]} if limit > 0 else set()
    return {mint: token for mint, token in tokens.items() if mint in kept}


def _write_json_atomic(path: Path, data):
    """Write JSON to a temp file in the same directory, then swap it in."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except (OSError, TypeError, ValueError) as e:
        raise PersistenceFailure(f"Failed to write {path}: {e}") from e
