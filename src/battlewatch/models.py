from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .identity import decode_name


class StructureType(str, Enum):
    """Structure categories reported by the battle feed."""

    NONE = "None"
    REALM = "Realm"
    HYPERSTRUCTURE = "Hyperstructure"
    BANK = "Bank"
    FRAGMENT_MINE = "FragmentMine"


@dataclass(frozen=True)
class Combatant:
    address: str
    packed_name: str
    army_id: str

    @property
    def name(self) -> str:
        return decode_name(self.packed_name)


@dataclass(frozen=True)
class BattleEvent:
    """A battle-start record as read from the feed."""

    event_id: str
    battle_id: str
    attacker: Combatant
    defender: Combatant
    x: int
    y: int
    structure_type: str
    duration_left: int
    timestamp: int
    raw_duration_left: str = ""
    raw_timestamp: str = ""

    @property
    def structure_kind(self) -> StructureType | None:
        try:
            return StructureType(self.structure_type)
        except ValueError:
            return None

    @property
    def is_realm(self) -> bool:
        return self.structure_kind is StructureType.REALM


@dataclass(frozen=True)
class RealmInfo:
    name: str
    owner_name: str


@dataclass(frozen=True)
class Subscriber:
    handle: str
    display_name: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class NotificationMessage:
    battle_id: str
    text: str
    recipients: tuple[str, ...] = ()

    @classmethod
    def build(cls, battle_id: str, text: str, subscribers: list[Subscriber]) -> NotificationMessage:
        handles = tuple(dict.fromkeys(subscriber.handle for subscriber in subscribers))
        return cls(battle_id=battle_id, text=text, recipients=handles)


@dataclass(frozen=True)
class PolledBattle:
    event: BattleEvent
    is_new: bool


__all__ = [
    "BattleEvent",
    "Combatant",
    "NotificationMessage",
    "PolledBattle",
    "RealmInfo",
    "StructureType",
    "Subscriber",
]
