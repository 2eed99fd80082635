from __future__ import annotations

import logging
from typing import Protocol

from .identity import UNKNOWN_NAME
from .models import Subscriber

LOGGER = logging.getLogger(__name__)


class SubscriberLookup(Protocol):
    async def find_by_display_name(self, display_name: str) -> list[Subscriber]: ...


class RecipientResolver:
    """Finds the subscribers registered under a battle's defender or realm owner name."""

    def __init__(self, directory: SubscriberLookup) -> None:
        self._directory = directory

    async def resolve(self, defender_name: str, owner_name: str | None = None) -> list[Subscriber]:
        """Return matching subscribers, deduplicated by handle in first-match order.

        Undecodable names (``"Unknown"``) and empty names are never looked up.
        A failed lookup for one name is logged and contributes no matches.
        """
        names: list[str] = []
        for candidate in (defender_name, owner_name):
            if not candidate or candidate == UNKNOWN_NAME or candidate in names:
                continue
            names.append(candidate)

        resolved: dict[str, Subscriber] = {}
        for display_name in names:
            try:
                matches = await self._directory.find_by_display_name(display_name)
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Subscriber lookup failed for %r: %s", display_name, exc)
                continue
            for subscriber in matches:
                resolved.setdefault(subscriber.handle, subscriber)

        LOGGER.debug(
            "Resolved %d recipient(s) for %s",
            len(resolved),
            " / ".join(repr(name) for name in names) or "<no names>",
        )
        return list(resolved.values())
