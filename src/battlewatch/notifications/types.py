from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class SendOptions:
    rich_formatting: bool = True
    suppress_link_preview: bool = True


class FailureKind(str, Enum):
    PERMANENT = "permanent"  # recipient blocked the bot or no longer exists
    TRANSIENT = "transient"


@dataclass
class DispatchReport:
    battle_id: str
    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed) + len(self.removed)


class NotificationChannel:
    """Delivers rendered text to a single recipient handle.

    ``send`` raises ``DeliveryError`` when the channel reports a failure.
    """

    name: str = "channel"

    def enabled(self) -> bool:
        return True

    async def send(self, handle: str, text: str, options: SendOptions) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
