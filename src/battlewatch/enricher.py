from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import FeedError
from .models import BattleEvent, RealmInfo

if TYPE_CHECKING:  # pragma: no cover
    from .feed.client import FeedClient

LOGGER = logging.getLogger(__name__)


class RealmEnricher:
    """Looks up the settled realm behind a Realm battle."""

    def __init__(self, feed: FeedClient) -> None:
        self._feed = feed

    async def enrich(self, event: BattleEvent) -> RealmInfo | None:
        """Return the realm at the battle's coordinates.

        None means either nothing is settled there or the lookup failed; the
        two cases are not distinguished for callers.
        """
        if not event.is_realm:
            return None
        try:
            realm = await self._feed.fetch_realm(event.x, event.y)
        except FeedError as exc:
            LOGGER.warning(
                "Realm lookup failed for battle %s at (%d, %d): %s",
                event.battle_id,
                event.x,
                event.y,
                exc,
            )
            return None
        if realm is None:
            LOGGER.debug("No realm settled at (%d, %d) for battle %s", event.x, event.y, event.battle_id)
        return realm
