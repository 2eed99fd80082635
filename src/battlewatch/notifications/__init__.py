"""
Notification delivery for battlewatch.

Public API:
    - NotificationChannel: Base class for delivery channels
    - TelegramChannel: Telegram Bot API channel
    - Dispatcher: Per-recipient fan-out with failure classification
    - classify_failure: Permanent/transient classification of a DeliveryError
    - SendOptions: Per-send formatting flags
    - DispatchReport: Outcome of one dispatch
"""

from __future__ import annotations

from .types import DispatchReport, FailureKind, NotificationChannel, SendOptions

from .dispatcher import Dispatcher, classify_failure
from .telegram import TelegramChannel

__all__ = [
    "DispatchReport",
    "Dispatcher",
    "FailureKind",
    "NotificationChannel",
    "SendOptions",
    "TelegramChannel",
    "classify_failure",
]
