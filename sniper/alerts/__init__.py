from .dispatcher import DispatchResult, TradeDispatcher
from .telegram import AlertConfig, TelegramAlerts, send_test_alert

__all__ = [
    "DispatchResult",
    "TradeDispatcher",
    "AlertConfig",
    "TelegramAlerts",
    "send_test_alert",
]
