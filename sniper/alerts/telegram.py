"""
Telegram Alerts
===============

Optional Telegram notification when a tracked token crosses the gain trigger.

Sends are fire-and-forget on a background thread and rate limited, so a slow
or failing Telegram never holds up the tracking loop.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

import requests

# Timezone for alert timestamps
EASTERN_TZ = ZoneInfo("America/New_York")

logger = logging.getLogger(__name__)

MIN_MESSAGE_INTERVAL_SECONDS = 1  # Telegram limit is 30/sec, stay well below
MAX_ALERTS_PER_MINUTE = 20


@dataclass
class AlertConfig:
    """Configuration for alert sending."""
    bot_token: str
    chat_id: str
    dry_run: bool = False
    max_message_length: int = 4000
    min_message_interval: float = MIN_MESSAGE_INTERVAL_SECONDS


class TelegramAlerts:
    """
    Telegram alert sender for gain triggers.

    Includes rate limiting to prevent Telegram API abuse.
    """

    def __init__(self, config: AlertConfig):
        self.config = config
        self._validate()

        self._last_message_time: float = 0
        self._alerts_this_minute: List[float] = []
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls, dry_run: bool = False) -> Optional["TelegramAlerts"]:
        """
        Create TelegramAlerts from environment variables.

        Returns:
            TelegramAlerts instance if configured, None otherwise
        """
        bot_token = os.environ.get("TELEGRAM_BOT_TOKEN")
        chat_id = os.environ.get("TELEGRAM_CHAT_ID")

        if not bot_token or not chat_id:
            if dry_run:
                return cls(AlertConfig(bot_token="", chat_id="", dry_run=True))
            logger.info("Telegram not configured (set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID)")
            return None

        return cls(AlertConfig(bot_token=bot_token, chat_id=chat_id, dry_run=dry_run))

    def _validate(self):
        if not self.config.dry_run:
            if not self.config.bot_token:
                raise ValueError("TELEGRAM_BOT_TOKEN is required (or use --dry-run)")
            if not self.config.chat_id:
                raise ValueError("TELEGRAM_CHAT_ID is required (or use --dry-run)")

    def _check_rate_limit(self) -> bool:
        """True if another message fits in the per-minute budget."""
        now = time.time()
        self._alerts_this_minute = [t for t in self._alerts_this_minute if now - t < 60]

        if len(self._alerts_this_minute) >= MAX_ALERTS_PER_MINUTE:
            logger.warning(f"Rate limited: {len(self._alerts_this_minute)} alerts in last minute")
            return False
        return True

    def _enforce_message_interval(self):
        elapsed = time.time() - self._last_message_time
        if elapsed < self.config.min_message_interval:
            time.sleep(self.config.min_message_interval - elapsed)

    def _truncate_message(self, text: str) -> str:
        if len(text) > self.config.max_message_length:
            return text[:self.config.max_message_length - 20] + "\n... (truncated)"
        return text

    def send_message(self, text: str) -> bool:
        """
        Send a message via the Telegram Bot API.

        Returns:
            True if Telegram accepted the message
        """
        text = self._truncate_message(text)

        if self.config.dry_run:
            logger.info(f"[DRY RUN] Would send Telegram message:\n{text}")
            return True

        with self._lock:
            if not self._check_rate_limit():
                logger.warning("Message dropped due to rate limiting")
                return False
            self._enforce_message_interval()

            url = f"https://api.telegram.org/bot{self.config.bot_token}/sendMessage"
            payload = {
                "chat_id": self.config.chat_id,
                "text": text,
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            }

            try:
                response = requests.post(url, json=payload, timeout=10)
                response.raise_for_status()
            except requests.exceptions.Timeout:
                logger.error("Telegram request timed out")
                return False
            except requests.exceptions.HTTPError as e:
                # Status only, the URL carries the bot token
                status_code = e.response.status_code if e.response is not None else "unknown"
                logger.error(f"Telegram HTTP error: {status_code}")
                return False
            except requests.exceptions.RequestException:
                logger.error("Telegram request failed")
                return False

            now = time.time()
            self._last_message_time = now
            self._alerts_this_minute.append(now)

        logger.info("Telegram alert sent")
        return True

    def _send_message_async(self, text: str):
        """Send on a daemon thread and return immediately."""
        def _send():
            try:
                self.send_message(text)
            except Exception as e:
                logger.error(f"Async send failed: {e}")

        thread = threading.Thread(target=_send, daemon=True)
        thread.start()

    def format_gain_alert(
        self,
        name: str,
        mint: str,
        initial_price: float,
        trigger_price: float,
        gain_pct: float,
        dispatched: bool,
        alert_time: datetime = None,
    ) -> str:
        if alert_time is None:
            alert_time = datetime.now(timezone.utc)
        alert_time_et = alert_time.astimezone(EASTERN_TZ)

        trade_status = "posted" if dispatched else "FAILED"
        lines = [
            f"<b>GAIN TRIGGER: {name or mint[:8]}</b> +{gain_pct:.1f}%",
            "",
            f"Entry: <code>{initial_price:.10f}</code>",
            f"Now: <code>{trigger_price:.10f}</code>",
            f"Trade: {trade_status}",
            "",
            f'<a href="https://pump.fun/coin/{mint}">{mint[:6]}...{mint[-4:]}</a>',
            f"{alert_time_et.strftime('%Y-%m-%d %H:%M:%S')} ET",
        ]
        return "\n".join(lines)

    def send_gain_alert_async(
        self,
        name: str,
        mint: str,
        initial_price: float,
        trigger_price: float,
        gain_pct: float,
        dispatched: bool,
    ):
        """Queue a gain alert without blocking (fire and forget)."""
        message = self.format_gain_alert(
            name=name,
            mint=mint,
            initial_price=initial_price,
            trigger_price=trigger_price,
            gain_pct=gain_pct,
            dispatched=dispatched,
        )
        self._send_message_async(message)


def send_test_alert(dry_run: bool = False) -> bool:
    """Send a test message to check the Telegram configuration."""
    alerts = TelegramAlerts.from_env(dry_run=dry_run)
    if alerts is None:
        return False

    now_et = datetime.now(timezone.utc).astimezone(EASTERN_TZ)
    return alerts.send_message(
        "<b>Sniper test alert</b>\n"
        f"Telegram is configured correctly.\n{now_et.strftime('%Y-%m-%d %H:%M:%S')} ET"
    )
