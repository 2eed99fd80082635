from __future__ import annotations

import pytest
from pydantic import ValidationError

from battlewatch.feed.models import BattleStartNode, Connection, SettleRealmNode
from battlewatch.identity import UNKNOWN_NAME, encode_short_string
from battlewatch.models import Combatant, NotificationMessage, StructureType, Subscriber

from conftest import battle_node, build_event


def test_structure_kind() -> None:
    assert build_event(structure_type="Realm").structure_kind is StructureType.REALM
    assert build_event(structure_type="FragmentMine").structure_kind is StructureType.FRAGMENT_MINE
    assert build_event(structure_type="Castle").structure_kind is None
    assert not build_event(structure_type="Bank").is_realm


def test_combatant_names_fall_back_to_unknown() -> None:
    event = build_event()
    broken = Combatant(address="0x1", packed_name="0xzz", army_id="1")

    assert event.defender.name == "Bob"
    assert broken.name == UNKNOWN_NAME


def test_notification_message_deduplicates_handles() -> None:
    subscribers = [
        Subscriber(handle="100", display_name="Bob"),
        Subscriber(handle="200", display_name="Alice"),
        Subscriber(handle="100", display_name="Alice"),
    ]

    message = NotificationMessage.build("B1", "text", subscribers)

    assert message.recipients == ("100", "200")


def test_battle_node_accepts_plain_numbers_for_packed_fields() -> None:
    node = BattleStartNode.model_validate(battle_node(duration_left=754, timestamp=1_700_000_000))

    event = node.to_event()

    assert event.duration_left == 754
    assert event.timestamp == 1_700_000_000


def test_battle_node_requires_core_fields() -> None:
    payload = battle_node()
    del payload["defender_name"]

    with pytest.raises(ValidationError):
        BattleStartNode.model_validate(payload)


def test_connection_of_realm_nodes() -> None:
    payload = {
        "totalCount": 1,
        "edges": [
            {"node": {"realm_name": encode_short_string("Stonehold"), "owner_name": encode_short_string("Alice")}}
        ],
    }

    connection = Connection[SettleRealmNode].model_validate(payload)

    assert connection.total_count == 1
    assert [node.to_realm_info().name for node in connection.nodes()] == ["Stonehold"]
