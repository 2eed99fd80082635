"""In-memory record of battles that have already been notified."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

LOGGER = logging.getLogger(__name__)


class SeenBattleStore:
    """Set of battle ids already handled by this process.

    The feed is a snapshot of open battles, so an id reappearing means the
    battle is still running rather than a new one. Entries therefore live for
    the process lifetime unless ``ttl_seconds`` is set, in which case an id is
    dropped once it has not been observed for longer than the TTL.

    The store is owned by a single poller and is not safe for concurrent
    mutation from overlapping poll cycles.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float | None = None,
        now_fn: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._now_fn = now_fn
        self._last_seen: dict[str, float] = {}

    def __contains__(self, battle_id: object) -> bool:
        return battle_id in self._last_seen

    def __len__(self) -> int:
        return len(self._last_seen)

    def mark(self, battle_id: str) -> bool:
        """Record ``battle_id`` as observed now; return True if it was not yet known."""
        is_new = battle_id not in self._last_seen
        self._last_seen[battle_id] = self._now_fn()
        return is_new

    def forget(self, battle_id: str) -> None:
        self._last_seen.pop(battle_id, None)

    def evict_expired(self) -> int:
        """Drop ids not observed within the TTL. Returns the number removed."""
        if self._ttl is None:
            return 0
        cutoff = self._now_fn() - self._ttl
        expired = [battle_id for battle_id, seen_at in self._last_seen.items() if seen_at < cutoff]
        for battle_id in expired:
            del self._last_seen[battle_id]
        if expired:
            LOGGER.debug("Evicted %d battle id(s) not seen for %.0fs", len(expired), self._ttl)
        return len(expired)
