"""
CacheStore behaviour: TTL expiry, corruption recovery, dropped writes and
namespace-scoped invalidation.
"""

import json

import pytest

from booking_client.adapters.memory_storage import InMemoryStorage
from booking_client.adapters.sqlite_storage import SqliteStorage
from booking_client.domain.cache import CacheStore, CacheTtls
from booking_client.domain.cache_keys import (
    availability_key,
    categories_key,
    services_key,
    staff_key,
)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def cache(storage, clock):
    return CacheStore(storage, clock=clock)


def test_get_after_set_returns_value(cache):
    cache.set(staff_key("v1"), [{"staff_id": "s1"}], 600)
    assert cache.get(staff_key("v1"), 600) == [{"staff_id": "s1"}]


def test_entry_layout_in_storage(cache, storage, clock):
    cache.set(staff_key("v1"), ["x"], 600)
    raw = json.loads(storage.items["booking_cache_staff_v1"])
    assert raw == {"data": ["x"], "storedAt": int(clock.now * 1000)}


def test_expired_entry_is_absent_and_deleted(cache, storage, clock):
    cache.set(staff_key("v1"), ["x"], 600)
    clock.advance(601)
    assert cache.get(staff_key("v1"), 600) is None
    assert "booking_cache_staff_v1" not in storage.items


def test_entry_valid_exactly_at_ttl(cache, clock):
    cache.set(staff_key("v1"), ["x"], 600)
    clock.advance(600)
    assert cache.get(staff_key("v1"), 600) == ["x"]


def test_ttl_belongs_to_the_reader(cache, clock):
    """The same entry can be fresh for one reader and stale for another."""
    cache.set(staff_key("v1"), ["x"], 600)
    clock.advance(60)
    assert cache.get(staff_key("v1"), 600) == ["x"]
    assert cache.get(staff_key("v1"), 30) is None


def test_zero_ttl_only_valid_in_same_instant(cache, clock):
    cache.set(categories_key(), ["c"], 0)
    assert cache.get(categories_key(), 0) == ["c"]
    clock.advance(0.01)
    assert cache.get(categories_key(), 0) is None


def test_missing_key_returns_none(cache):
    assert cache.get(services_key("nope"), 60) is None


def test_corrupt_entry_is_deleted(cache, storage):
    storage.items["booking_cache_categories"] = "{not json"
    assert cache.get(categories_key(), 60) is None
    assert "booking_cache_categories" not in storage.items


def test_entry_without_timestamp_is_corrupt(cache, storage):
    storage.items["booking_cache_categories"] = json.dumps({"data": []})
    assert cache.get(categories_key(), 60) is None
    assert "booking_cache_categories" not in storage.items


def test_failed_write_is_dropped_silently(cache, storage):
    storage.fail_writes = True
    cache.set(staff_key("v1"), ["x"], 600)  # must not raise
    assert cache.get(staff_key("v1"), 600) is None


def test_unserialisable_value_is_dropped(cache):
    cache.set(staff_key("v1"), object(), 600)
    assert cache.get(staff_key("v1"), 600) is None


def test_remove(cache):
    cache.set(staff_key("v1"), ["x"], 600)
    cache.remove(staff_key("v1"))
    assert cache.get(staff_key("v1"), 600) is None


def test_clear_all_leaves_unrelated_keys(cache, storage):
    storage.items["cart_items"] = "[1, 2]"
    cache.set(categories_key(), [], 0)
    cache.set(staff_key("v1"), [], 600)

    assert cache.clear_all() == 2
    assert storage.items == {"cart_items": "[1, 2]"}


def test_remove_namespace_only_touches_that_namespace(cache, storage):
    cache.set(staff_key("v1"), [], 600)
    cache.set(staff_key("v2"), [], 600)
    cache.set(services_key("c1"), [], 0)

    assert cache.remove_namespace("staff") == 2
    assert list(storage.items) == ["booking_cache_services_c1"]


def test_remove_single_day_availability(cache, storage):
    from datetime import date

    cache.set(availability_key("s1", "svc", date(2026, 1, 5)), {"slots": []}, 120)
    cache.set(availability_key("s1", "svc", date(2026, 1, 6)), {"slots": []}, 120)
    cache.remove(availability_key("s1", "svc", date(2026, 1, 5)))
    assert list(storage.items) == ["booking_cache_availability_s1_svc_2026-01-06"]


def test_works_over_sqlite(clock):
    cache = CacheStore(SqliteStorage(":memory:"), clock=clock)
    cache.set(staff_key("v1"), [{"staff_id": "s1", "name": "Ana"}], 600)
    assert cache.get(staff_key("v1"), 600) == [{"staff_id": "s1", "name": "Ana"}]
    clock.advance(700)
    assert cache.get(staff_key("v1"), 600) is None


def test_default_ttls():
    ttls = CacheTtls()
    assert ttls.categories == 0
    assert ttls.services == 0
    assert ttls.staff == 600
    assert ttls.availability == 120
    assert ttls.for_namespace("staff") == 600


def test_get_as_decodes(cache):
    cache.set(staff_key("v1"), ["a", "b"], 600)
    assert cache.get_as(staff_key("v1"), 600, tuple) == ("a", "b")


def test_get_as_removes_undecodable_entry(cache, storage):
    cache.set(staff_key("v1"), {"old": "layout"}, 600)

    def decode(data):
        return [item["staff_id"] for item in data]

    assert cache.get_as(staff_key("v1"), 600, decode) is None
    assert "booking_cache_staff_v1" not in storage.items


def test_day_key_includes_variation_and_addons():
    from datetime import date

    day = date(2026, 1, 5)
    assert str(availability_key("s1", "svc", day)) == "availability_s1_svc_2026-01-05"
    assert (
        str(availability_key("s1", "svc", day, "v1", ["b", "a"]))
        == "availability_s1_svc_2026-01-05_v1_a,b"
    )
    assert availability_key("s1", "svc", day, "v1") != availability_key("s1", "svc", day, "v1", ["a"])
