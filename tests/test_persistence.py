from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path

import pytest

from battlewatch.persistence import SubscriberDirectory, SubscriberStore


@pytest.fixture
def store(tmp_path: Path):
    store = SubscriberStore(tmp_path / "nested" / "subscribers.db")
    yield store
    store.close()


class TestSubscriberStore:
    def test_creates_schema_and_parent_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "subscribers.db"
        store = SubscriberStore(db_path)
        store.close()

        conn = sqlite3.connect(db_path)
        try:
            version = conn.execute("SELECT version FROM schema_version").fetchone()[0]
            tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        finally:
            conn.close()
        assert version == SubscriberStore.SCHEMA_VERSION
        assert "subscribers" in tables

    def test_upsert_and_find(self, store: SubscriberStore) -> None:
        store.upsert("100", "Bob")
        store.upsert("101", "Bob")
        store.upsert("200", "Alice")

        assert [sub.handle for sub in store.find_by_display_name("Bob")] == ["100", "101"]
        assert store.find_by_display_name("bob") == []
        assert store.find_by_display_name("Nobody") == []

    def test_upsert_replaces_name_and_keeps_registration_time(self, store: SubscriberStore) -> None:
        first = store.upsert("100", "Bob")
        second = store.upsert("100", "Robert")

        assert second.display_name == "Robert"
        assert second.created_at == first.created_at
        assert store.find_by_display_name("Bob") == []

    def test_get(self, store: SubscriberStore) -> None:
        store.upsert("100", "Bob")

        assert store.get("100").display_name == "Bob"
        assert store.get("999") is None

    def test_delete(self, store: SubscriberStore) -> None:
        store.upsert("100", "Bob")

        assert store.delete("100") is True
        assert store.delete("100") is False
        assert store.get("100") is None

    def test_list_all_sorted_by_name(self, store: SubscriberStore) -> None:
        store.upsert("100", "Bob")
        store.upsert("200", "Alice")

        assert [sub.display_name for sub in store.list_all()] == ["Alice", "Bob"]

    def test_data_survives_reopen(self, tmp_path: Path) -> None:
        db_path = tmp_path / "subscribers.db"
        store = SubscriberStore(db_path)
        store.upsert("100", "Bob")
        store.close()

        reopened = SubscriberStore(db_path)
        try:
            assert reopened.get("100").display_name == "Bob"
        finally:
            reopened.close()


class TestSubscriberDirectory:
    def test_async_operations_run_off_the_event_loop(self, tmp_path: Path) -> None:
        directory = SubscriberDirectory.open(tmp_path / "subscribers.db")

        async def scenario():
            await directory.upsert("100", "Bob")
            await directory.upsert("200", "Alice")
            bobs = await directory.find_by_display_name("Bob")
            removed = await directory.delete("100")
            removed_again = await directory.delete("100")
            remaining = await directory.find_by_display_name("Bob")
            return bobs, removed, removed_again, remaining

        try:
            bobs, removed, removed_again, remaining = asyncio.run(scenario())
        finally:
            directory.close()

        assert [sub.handle for sub in bobs] == ["100"]
        assert removed is True
        assert removed_again is False
        assert remaining == []

    def test_close_releases_connections_of_every_worker_thread(self, tmp_path: Path) -> None:
        workers = 4
        barrier = threading.Barrier(workers)

        class RendezvousStore(SubscriberStore):
            def find_by_display_name(self, display_name: str):
                # Hold each worker until all of them have their own connection
                self._get_connection()
                barrier.wait(timeout=5)
                return super().find_by_display_name(display_name)

        store = RendezvousStore(tmp_path / "subscribers.db")
        store.upsert("100", "Bob")
        directory = SubscriberDirectory(store)

        async def scenario():
            return await asyncio.gather(*(directory.find_by_display_name("Bob") for _ in range(workers)))

        results = asyncio.run(scenario())
        opened = list(store._connections.values())
        directory.close()

        assert all([sub.handle for sub in result] == ["100"] for result in results)
        assert len(opened) == workers + 1
        assert store._connections == {}
        for connection in opened:
            with pytest.raises(sqlite3.ProgrammingError):
                connection.execute("SELECT 1")

    def test_store_reopens_after_close(self, tmp_path: Path) -> None:
        store = SubscriberStore(tmp_path / "subscribers.db")
        store.upsert("100", "Bob")
        store.close()

        try:
            assert store.get("100").display_name == "Bob"
        finally:
            store.close()
