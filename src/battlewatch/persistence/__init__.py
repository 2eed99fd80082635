"""Process state and subscriber storage.

Public API:
- SeenBattleStore: In-memory set of battle ids already notified
- SubscriberStore: SQLite-backed subscriber registrations
- SubscriberDirectory: Async facade over SubscriberStore
"""

from .seen_store import SeenBattleStore
from .subscriber_store import SubscriberDirectory, SubscriberStore

__all__ = [
    "SeenBattleStore",
    "SubscriberDirectory",
    "SubscriberStore",
]
