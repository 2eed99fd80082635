"""GraphQL documents sent to the Torii indexer."""

from __future__ import annotations

BATTLE_START_QUERY = """
query S0EternumBattleStartDataModels {
  s0EternumBattleStartDataModels {
    totalCount
    edges {
      node {
        id
        event_id
        battle_entity_id
        attacker
        attacker_name
        attacker_army_entity_id
        defender_name
        defender
        defender_army_entity_id
        duration_left
        x
        y
        structure_type
        timestamp
      }
    }
  }
}
"""

SETTLE_REALM_QUERY = """
query S0EternumSettleRealmDataModels($x: Int!, $y: Int!) {
  s0EternumSettleRealmDataModels(where: { x: $x, y: $y }) {
    edges {
      node {
        realm_name
        owner_name
      }
    }
  }
}
"""

BATTLE_START_FIELD = "s0EternumBattleStartDataModels"
SETTLE_REALM_FIELD = "s0EternumSettleRealmDataModels"
