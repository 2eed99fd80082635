"""Event feed access.

This package wraps the Torii GraphQL indexer: the query documents, the
pydantic response models and the async client used by the poller and the
realm enricher.
"""

from __future__ import annotations

from .client import FeedClient
from .models import BattleStartNode, Connection, GraphQLResponse, SettleRealmNode

__all__ = [
    "BattleStartNode",
    "Connection",
    "FeedClient",
    "GraphQLResponse",
    "SettleRealmNode",
]
