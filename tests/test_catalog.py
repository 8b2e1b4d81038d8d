"""CatalogLookup: cache-first catalog reads and single-variation handling."""

import pytest

from booking_client.adapters.memory_storage import InMemoryStorage
from booking_client.adapters.ports import (
    Addon,
    Category,
    ProviderError,
    Service,
    ServiceVariation,
    StaffMember,
)
from booking_client.adapters.simulator_provider import SimulatorSchedulingProvider
from booking_client.domain.cache import CacheStore
from booking_client.domain.catalog import (
    CatalogLookup,
    has_single_variation,
    synthesize_variation,
)


def _service(service_id="svc-1", variations=(), is_active=True):
    return Service(
        service_id=service_id,
        category_id="cat-1",
        name="Haircut",
        price_cents=8000,
        duration_ms=3_600_000,
        variation_id=f"{service_id}-var",
        variations=list(variations),
        is_active=is_active,
    )


@pytest.fixture
def sim():
    sim = SimulatorSchedulingProvider()
    sim.inject_category(Category("cat-1", "Hair"))
    sim.inject_category(Category("cat-2", "Empty"))
    sim.inject_category(Category("cat-3", "Retired", is_active=False))
    sim.inject_service(_service("svc-1"))
    sim.inject_service(_service("svc-old", is_active=False))
    sim.inject_service(Service("svc-3", "cat-3", "Old", 100, 60_000, "v3"))
    sim.inject_staff("svc-1-var", StaffMember("staff-1", "Ana"))
    sim.inject_addon("svc-1", Addon("add-1", "Wash", "add-var-1", 2, 900_000, 2000))
    return sim


@pytest.fixture
def catalog(sim):
    return CatalogLookup(sim, CacheStore(InMemoryStorage()))


def test_single_variation_detection():
    assert has_single_variation(_service())
    assert has_single_variation(_service(variations=[ServiceVariation("v", "Only", 1, 1, 3)]))
    assert not has_single_variation(_service(variations=[
        ServiceVariation("v1", "Short", 5000, 1_800_000),
        ServiceVariation("v2", "Long", 8000, 3_600_000),
    ]))


def test_synthesized_variation_uses_service_values():
    variation = synthesize_variation(_service(variations=[ServiceVariation("x", "Only", 1, 1, 4)]))
    assert variation.variation_id == "svc-1-var"
    assert variation.price_cents == 8000
    assert variation.duration_ms == 3_600_000
    assert variation.version == 4


def test_synthesized_variation_without_variations_has_version_zero():
    assert synthesize_variation(_service()).version == 0


@pytest.mark.asyncio
async def test_categories_without_services_or_inactive_are_hidden(catalog):
    categories = await catalog.get_categories()
    assert [c.category_id for c in categories] == ["cat-1"]


@pytest.mark.asyncio
async def test_inactive_services_are_hidden(catalog):
    services = await catalog.get_services("cat-1")
    assert [s.service_id for s in services] == ["svc-1"]


@pytest.mark.asyncio
async def test_services_survive_cache_round_trip(sim):
    from booking_client.domain.cache import CacheTtls

    sim.inject_service(_service("svc-v", variations=[
        ServiceVariation("v1", "Short", 5000, 1_800_000, 1),
        ServiceVariation("v2", "Long", 8000, 3_600_000, 1),
    ]))
    catalog = CatalogLookup(sim, CacheStore(InMemoryStorage()), CacheTtls(services=60))
    await catalog.get_services("cat-1")
    services = await catalog.get_services("cat-1")
    assert sim.calls_to("get_services") == 1
    assert [v.variation_id for v in services[-1].variations] == ["v1", "v2"]


@pytest.mark.asyncio
async def test_staff_is_cached_for_ten_minutes(catalog, sim):
    first = await catalog.get_staff("svc-1-var")
    second = await catalog.get_staff("svc-1-var")
    assert first == second == [StaffMember("staff-1", "Ana")]
    assert sim.calls_to("get_staff") == 1


@pytest.mark.asyncio
async def test_addons(catalog):
    addons = await catalog.get_addons("svc-1")
    assert addons == [Addon("add-1", "Wash", "add-var-1", 2, 900_000, 2000)]


@pytest.mark.asyncio
async def test_provider_error_propagates(catalog, sim):
    sim.fail_method("get_staff")
    with pytest.raises(ProviderError):
        await catalog.get_staff("svc-1-var")


@pytest.mark.asyncio
async def test_undecodable_staff_entry_is_refetched(sim):
    from booking_client.domain.cache_keys import staff_key

    cache = CacheStore(InMemoryStorage())
    cache.set(staff_key("svc-1-var"), [{"bogus": 1}], 600)
    catalog = CatalogLookup(sim, cache)

    staff = await catalog.get_staff("svc-1-var")

    assert staff == [StaffMember("staff-1", "Ana")]
    assert sim.calls_to("get_staff") == 1
    assert cache.get(staff_key("svc-1-var"), 600) == [{"staff_id": "staff-1", "name": "Ana", "bio": ""}]


@pytest.mark.asyncio
async def test_undecodable_services_entry_is_refetched(sim):
    from booking_client.domain.cache import CacheTtls
    from booking_client.domain.cache_keys import services_key

    cache = CacheStore(InMemoryStorage())
    cache.set(services_key("cat-1"), {"services": "old layout"}, 0)
    catalog = CatalogLookup(sim, cache, CacheTtls(services=60))

    services = await catalog.get_services("cat-1")

    assert [s.service_id for s in services] == ["svc-1"]
    assert sim.calls_to("get_services") == 1
