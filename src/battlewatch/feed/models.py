"""Pydantic models for Torii GraphQL responses."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..identity import decode_name
from ..models import BattleEvent, Combatant, RealmInfo
from ..utils import parse_packed_int


def _as_text(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))
    return value


class GraphQLResponse(BaseModel):
    """Top-level GraphQL envelope."""

    model_config = ConfigDict(extra="ignore")

    data: dict[str, Any] | None = None
    errors: list[dict[str, Any]] | None = None

    def error_summary(self) -> str:
        messages = [str(error.get("message", error)) for error in self.errors or []]
        return "; ".join(messages) or "unknown GraphQL error"


class Edge[T](BaseModel):
    model_config = ConfigDict(extra="ignore")

    node: T


class Connection[T](BaseModel):
    """A Torii model listing (``edges { node { ... } }``)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_count: int | None = Field(default=None, alias="totalCount")
    edges: list[Edge[T]] = Field(default_factory=list)

    def nodes(self) -> list[T]:
        return [edge.node for edge in self.edges]


class BattleStartNode(BaseModel):
    """One ``BattleStartData`` record."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    event_id: str
    battle_entity_id: str
    attacker: str
    attacker_name: str
    attacker_army_entity_id: str
    defender: str
    defender_name: str
    defender_army_entity_id: str
    duration_left: str
    x: int
    y: int
    structure_type: str
    timestamp: str

    @field_validator(
        "id",
        "event_id",
        "battle_entity_id",
        "attacker",
        "attacker_name",
        "attacker_army_entity_id",
        "defender",
        "defender_name",
        "defender_army_entity_id",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _as_text(value)

    @field_validator("duration_left", "timestamp", mode="before")
    @classmethod
    def _coerce_packed(cls, value: Any) -> Any:
        # Packed fields are hex text; keep plain numbers readable by parse_packed_int
        if isinstance(value, int) and not isinstance(value, bool):
            return hex(value)
        return value

    def to_event(self) -> BattleEvent:
        """Convert to a domain event.

        Raises:
            ValueError: If the packed duration or timestamp cannot be read
        """
        return BattleEvent(
            event_id=self.event_id,
            battle_id=self.battle_entity_id,
            attacker=Combatant(
                address=self.attacker,
                packed_name=self.attacker_name,
                army_id=self.attacker_army_entity_id,
            ),
            defender=Combatant(
                address=self.defender,
                packed_name=self.defender_name,
                army_id=self.defender_army_entity_id,
            ),
            x=self.x,
            y=self.y,
            structure_type=self.structure_type,
            duration_left=parse_packed_int(self.duration_left),
            timestamp=parse_packed_int(self.timestamp),
            raw_duration_left=self.duration_left,
            raw_timestamp=self.timestamp,
        )


class SettleRealmNode(BaseModel):
    """One ``SettleRealmData`` record."""

    model_config = ConfigDict(extra="ignore")

    realm_name: str
    owner_name: str

    @field_validator("realm_name", "owner_name", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _as_text(value)

    def to_realm_info(self) -> RealmInfo:
        return RealmInfo(name=decode_name(self.realm_name), owner_name=decode_name(self.owner_name))


__all__ = [
    "BattleStartNode",
    "Connection",
    "Edge",
    "GraphQLResponse",
    "SettleRealmNode",
]
