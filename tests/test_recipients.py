from __future__ import annotations

import asyncio

from battlewatch.identity import UNKNOWN_NAME
from battlewatch.models import Subscriber
from battlewatch.recipients import RecipientResolver

from conftest import FakeDirectory


def _handles(subscribers: list[Subscriber]) -> list[str]:
    return [subscriber.handle for subscriber in subscribers]


def test_matches_defender_name(fake_directory) -> None:
    resolved = asyncio.run(RecipientResolver(fake_directory).resolve("Bob"))

    assert _handles(resolved) == ["100"]
    assert fake_directory.lookups == ["Bob"]


def test_matches_defender_or_owner(fake_directory) -> None:
    resolved = asyncio.run(RecipientResolver(fake_directory).resolve("Bob", "Alice"))

    assert _handles(resolved) == ["100", "200"]


def test_same_subscriber_through_both_names_appears_once() -> None:
    directory = FakeDirectory([Subscriber(handle="300", display_name="Carol")])

    resolved = asyncio.run(RecipientResolver(directory).resolve("Carol", "Carol"))

    assert _handles(resolved) == ["300"]
    assert directory.lookups == ["Carol"]


def test_handle_registered_under_both_names_appears_once() -> None:
    class DuplicatingDirectory(FakeDirectory):
        async def find_by_display_name(self, display_name: str):
            self.lookups.append(display_name)
            return [Subscriber(handle="400", display_name=display_name)]

    resolved = asyncio.run(RecipientResolver(DuplicatingDirectory()).resolve("Dave", "Erin"))

    assert _handles(resolved) == ["400"]


def test_unknown_and_empty_names_are_not_looked_up(fake_directory) -> None:
    resolved = asyncio.run(RecipientResolver(fake_directory).resolve(UNKNOWN_NAME, ""))

    assert resolved == []
    assert fake_directory.lookups == []


def test_no_matches(fake_directory) -> None:
    assert asyncio.run(RecipientResolver(fake_directory).resolve("Nobody", None)) == []


def test_failed_lookup_for_one_name_keeps_the_other(fake_directory) -> None:
    class FlakyDirectory(FakeDirectory):
        async def find_by_display_name(self, display_name: str):
            if display_name == "Bob":
                raise RuntimeError("database is locked")
            return await super().find_by_display_name(display_name)

    directory = FlakyDirectory(fake_directory.subscribers)

    resolved = asyncio.run(RecipientResolver(directory).resolve("Bob", "Alice"))

    assert _handles(resolved) == ["200"]
