"""
Contract tests for KeyValueStorage implementations.

Runs against both InMemoryStorage and SqliteStorage.
"""

import pytest

from booking_client.adapters.memory_storage import InMemoryStorage
from booking_client.adapters.sqlite_storage import SqliteStorage
from tests.contracts.storage_contract import KeyValueStorageContract


class TestInMemoryStorage(KeyValueStorageContract):

    def create_storage(self):
        return InMemoryStorage()

    def test_isolation_between_instances(self):
        """Two in-memory instances must not share state."""
        s1 = InMemoryStorage()
        s2 = InMemoryStorage()
        s1.set_item("k", "v")
        assert s2.get_item("k") is None

    def test_fail_writes_raises(self):
        storage = InMemoryStorage()
        storage.fail_writes = True
        with pytest.raises(OSError):
            storage.set_item("k", "v")
        assert storage.get_item("k") is None


class TestSqliteStorage(KeyValueStorageContract):

    def create_storage(self):
        return SqliteStorage(":memory:")

    def test_table_created_automatically(self):
        """No manual schema migration needed."""
        storage = SqliteStorage(":memory:")
        assert storage.get_item("k") is None
        assert storage.keys() == []

    def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "cache.db")
        first = SqliteStorage(path)
        first.set_item("booking_cache_categories", "payload")
        first.close()

        second = SqliteStorage(path)
        assert second.get_item("booking_cache_categories") == "payload"
