from __future__ import annotations

from typing import Any, Callable

import pytest

from battlewatch.identity import encode_short_string
from battlewatch.models import BattleEvent, Combatant, Subscriber


def build_event(
    battle_id: str = "B1",
    *,
    attacker: str = "Mordred",
    defender: str = "Bob",
    structure_type: str = "Realm",
    x: int = 10,
    y: int = 20,
    duration_left: int = 754,
    timestamp: int = 1_700_000_000,
) -> BattleEvent:
    return BattleEvent(
        event_id=f"evt-{battle_id}",
        battle_id=battle_id,
        attacker=Combatant(address="0xa11", packed_name=encode_short_string(attacker), army_id="101"),
        defender=Combatant(address="0xd3f", packed_name=encode_short_string(defender), army_id="202"),
        x=x,
        y=y,
        structure_type=structure_type,
        duration_left=duration_left,
        timestamp=timestamp,
        raw_duration_left=hex(duration_left),
        raw_timestamp=hex(timestamp),
    )


def battle_node(battle_id: str = "B1", **overrides: Any) -> dict[str, Any]:
    """A raw battle-start node as served by the feed."""
    node: dict[str, Any] = {
        "id": f"node-{battle_id}",
        "event_id": f"evt-{battle_id}",
        "battle_entity_id": battle_id,
        "attacker": "0xa11",
        "attacker_name": encode_short_string("Mordred"),
        "attacker_army_entity_id": "101",
        "defender": "0xd3f",
        "defender_name": encode_short_string("Bob"),
        "defender_army_entity_id": "202",
        "duration_left": "0x2f2",
        "x": 10,
        "y": 20,
        "structure_type": "Realm",
        "timestamp": hex(1_700_000_000),
    }
    node.update(overrides)
    return node


class FakeDirectory:
    """In-memory stand-in for SubscriberDirectory."""

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        self.subscribers = list(subscribers or [])
        self.lookups: list[str] = []
        self.deleted: list[str] = []

    async def find_by_display_name(self, display_name: str) -> list[Subscriber]:
        self.lookups.append(display_name)
        return [sub for sub in self.subscribers if sub.display_name == display_name]

    async def delete(self, handle: str) -> bool:
        self.deleted.append(handle)
        before = len(self.subscribers)
        self.subscribers = [sub for sub in self.subscribers if sub.handle != handle]
        return len(self.subscribers) < before


@pytest.fixture
def make_event() -> Callable[..., BattleEvent]:
    return build_event


@pytest.fixture
def fake_directory() -> FakeDirectory:
    return FakeDirectory(
        [
            Subscriber(handle="100", display_name="Bob"),
            Subscriber(handle="200", display_name="Alice"),
        ]
    )
