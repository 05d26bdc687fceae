"""
Trade Dispatcher
================

Posts a triggered token's final state to the trade endpoint.

Delivery is attempted once. There is no retry and no queue: whatever happens,
send() returns a DispatchResult and the caller retires the token anyway.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from ..config import config
from ..errors import DispatchFailed
from ..models import TrackedToken
from .telegram import TelegramAlerts

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of one delivery attempt. Callers are free to ignore it."""
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    dry_run: bool = False

    @classmethod
    def failed(cls, error: str, status_code: Optional[int] = None) -> "DispatchResult":
        return cls(ok=False, status_code=status_code, error=error)


class TradeDispatcher:
    """
    Best-effort sender for gain triggers.

    Optionally mirrors each trigger to Telegram.
    """

    def __init__(
        self,
        endpoint: str = None,
        timeout_sec: float = None,
        telegram_alerts: Optional[TelegramAlerts] = None,
        dry_run: bool = False,
    ):
        self.endpoint = endpoint or config.trade_endpoint
        self.timeout_sec = config.dispatch_timeout_sec if timeout_sec is None else timeout_sec
        self.telegram_alerts = telegram_alerts
        self.dry_run = dry_run

    def send(self, token: TrackedToken, trigger_price: float) -> DispatchResult:
        """
        Deliver the token and its trigger price to the trade endpoint.

        Never raises.
        """
        try:
            result = self._post(token, trigger_price)
        except DispatchFailed as e:
            logger.error(f"Trade post failed for {token.mint}: {e}")
            result = DispatchResult.failed(str(e), status_code=e.status_code)
        except Exception as e:
            logger.error(f"Trade post failed for {token.mint}: unexpected error: {e}")
            result = DispatchResult.failed(f"unexpected error: {e}")

        self._notify(token, trigger_price, result)
        return result

    def _post(self, token: TrackedToken, trigger_price: float) -> DispatchResult:
        """
        POST the payload once.

        Raises:
            DispatchFailed: On timeout, transport error or a non-2xx response
        """
        payload = token.to_payload(trigger_price)

        if self.dry_run:
            logger.info(
                f"[DRY RUN] Would post trade for {token.name} ({token.mint}) "
                f"at {trigger_price:.10f}"
            )
            return DispatchResult(ok=True, dry_run=True)

        try:
            response = requests.post(self.endpoint, json=payload, timeout=self.timeout_sec)
        except requests.exceptions.Timeout:
            raise DispatchFailed("timeout")
        except requests.exceptions.ConnectionError:
            raise DispatchFailed("connection error")
        except requests.exceptions.RequestException as e:
            raise DispatchFailed(f"request error: {e}")

        if not 200 <= response.status_code < 300:
            raise DispatchFailed(f"HTTP {response.status_code}", status_code=response.status_code)

        logger.info(f"Trade posted for {token.name} ({token.mint})")
        return DispatchResult(ok=True, status_code=response.status_code)

    def _notify(self, token: TrackedToken, trigger_price: float, result: DispatchResult):
        if not self.telegram_alerts:
            return
        try:
            self.telegram_alerts.send_gain_alert_async(
                name=token.name,
                mint=token.mint,
                initial_price=token.initial_price or 0.0,
                trigger_price=trigger_price,
                gain_pct=token.gain_pct(trigger_price) or 0.0,
                dispatched=result.ok,
            )
        except Exception as e:
            logger.error(f"Failed to queue gain alert: {e}")
