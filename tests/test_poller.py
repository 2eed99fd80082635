from __future__ import annotations

import asyncio

import pytest

from battlewatch.errors import FeedError
from battlewatch.persistence.seen_store import SeenBattleStore
from battlewatch.poller import EventPoller

from conftest import build_event


class ScriptedFeed:
    """Feed returning one scripted snapshot (or exception) per call."""

    def __init__(self, *snapshots) -> None:
        self._snapshots = list(snapshots)
        self.calls = 0

    async def fetch_battles(self):
        self.calls += 1
        snapshot = self._snapshots.pop(0)
        if isinstance(snapshot, Exception):
            raise snapshot
        return snapshot


def test_first_poll_marks_everything_new() -> None:
    feed = ScriptedFeed([build_event("B1"), build_event("B2")])
    poller = EventPoller(feed)

    polled = asyncio.run(poller.poll())

    assert [(item.event.battle_id, item.is_new) for item in polled] == [("B1", True), ("B2", True)]
    assert "B1" in poller.seen and "B2" in poller.seen


def test_unchanged_snapshot_is_not_new_again() -> None:
    snapshot = [build_event("B1")]
    poller = EventPoller(ScriptedFeed(snapshot, snapshot, snapshot))

    async def scenario():
        return [await poller.poll() for _ in range(3)]

    cycles = asyncio.run(scenario())

    flags = [[item.is_new for item in cycle] for cycle in cycles]
    assert flags == [[True], [False], [False]]


def test_new_battle_appears_between_snapshots() -> None:
    poller = EventPoller(ScriptedFeed([build_event("B1")], [build_event("B1"), build_event("B2")]))

    async def scenario():
        await poller.poll()
        return await poller.poll()

    second = asyncio.run(scenario())
    assert [(item.event.battle_id, item.is_new) for item in second] == [("B1", False), ("B2", True)]


def test_duplicate_id_within_snapshot_is_new_once() -> None:
    poller = EventPoller(ScriptedFeed([build_event("B1"), build_event("B1")]))

    polled = asyncio.run(poller.poll())

    assert [item.is_new for item in polled] == [True, False]


def test_feed_failure_marks_nothing() -> None:
    seen = SeenBattleStore()
    poller = EventPoller(ScriptedFeed(FeedError("down"), [build_event("B1")]), seen)

    with pytest.raises(FeedError):
        asyncio.run(poller.poll())
    assert len(seen) == 0

    polled = asyncio.run(poller.poll())
    assert polled[0].is_new is True


def test_injected_store_is_used() -> None:
    seen = SeenBattleStore()
    seen.mark("B1")
    poller = EventPoller(ScriptedFeed([build_event("B1")]), seen)

    polled = asyncio.run(poller.poll())

    assert polled[0].is_new is False
    assert poller.seen is seen
