from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from ..config import DEFAULT_PERMANENT_MARKERS
from ..errors import DeliveryError
from ..models import NotificationMessage
from .types import DispatchReport, FailureKind, NotificationChannel, SendOptions

LOGGER = logging.getLogger(__name__)


class SubscriberRemoval(Protocol):
    async def delete(self, handle: str) -> bool: ...


def classify_failure(error: DeliveryError, markers: Sequence[str] = DEFAULT_PERMANENT_MARKERS) -> FailureKind:
    """Classify a delivery failure from the channel's free-text reason.

    The channel contract only guarantees a human-readable description, so a
    failure is permanent when that description contains one of ``markers``
    (case-insensitive) and transient otherwise.
    """
    description = (error.description or "").lower()
    if any(marker.lower() in description for marker in markers):
        return FailureKind.PERMANENT
    return FailureKind.TRANSIENT


class Dispatcher:
    """Fans a message out to its recipients, isolating each delivery.

    A permanent failure removes the recipient from the directory; a
    transient one is logged and left for the next battle.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        directory: SubscriberRemoval,
        *,
        options: SendOptions | None = None,
        permanent_markers: Sequence[str] = DEFAULT_PERMANENT_MARKERS,
    ) -> None:
        self._channel = channel
        self._directory = directory
        self._options = options or SendOptions()
        self._markers = tuple(permanent_markers)

    async def dispatch(self, message: NotificationMessage) -> DispatchReport:
        report = DispatchReport(battle_id=message.battle_id)
        if not message.recipients:
            LOGGER.debug("No subscribers for battle %s; nothing to send", message.battle_id)
            return report

        for handle in message.recipients:
            try:
                await self._channel.send(handle, message.text, self._options)
            except DeliveryError as exc:
                await self._handle_failure(handle, exc, report)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning(
                    "Unexpected %s error delivering battle %s to %s: %s",
                    self._channel.name,
                    message.battle_id,
                    handle,
                    exc,
                )
                report.failed.append(handle)
            else:
                LOGGER.info("Notified %s about battle %s", handle, message.battle_id)
                report.delivered.append(handle)

        return report

    async def _handle_failure(self, handle: str, error: DeliveryError, report: DispatchReport) -> None:
        kind = classify_failure(error, self._markers)
        if kind is FailureKind.TRANSIENT:
            LOGGER.warning(
                "Delivery to %s failed (code=%s, retry_after=%s): %s",
                handle,
                error.error_code,
                error.retry_after,
                error.description,
            )
            report.failed.append(handle)
            return

        LOGGER.info(
            "Recipient %s is unreachable (code=%s: %s); unsubscribing",
            handle,
            error.error_code,
            error.description,
        )
        try:
            await self._directory.delete(handle)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Failed to remove unreachable subscriber %s: %s", handle, exc)
            report.failed.append(handle)
            return
        report.removed.append(handle)
