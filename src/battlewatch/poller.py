from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import PolledBattle
from .persistence.seen_store import SeenBattleStore

if TYPE_CHECKING:  # pragma: no cover
    from .feed.client import FeedClient

LOGGER = logging.getLogger(__name__)


class EventPoller:
    """Pulls the open-battle snapshot and classifies each battle as new or already seen."""

    def __init__(self, feed: FeedClient, seen: SeenBattleStore | None = None) -> None:
        self._feed = feed
        self.seen = seen if seen is not None else SeenBattleStore()

    async def poll(self) -> list[PolledBattle]:
        """Fetch the snapshot and classify it in feed order.

        Nothing is marked as seen when the fetch fails; ``FeedError`` propagates
        so the caller can abandon the cycle.
        """
        events = await self._feed.fetch_battles()
        self.seen.evict_expired()

        polled: list[PolledBattle] = []
        for event in events:
            is_new = self.seen.mark(event.battle_id)
            polled.append(PolledBattle(event=event, is_new=is_new))

        new_count = sum(1 for item in polled if item.is_new)
        LOGGER.debug("Polled %d open battle(s), %d new, %d tracked", len(polled), new_count, len(self.seen))
        return polled
