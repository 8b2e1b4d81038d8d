"""
Catalog lookups — categories, services, staff and add-ons, cache first.

These are the on-demand consumers the Preloader warms up for: a lookup that
runs right after a successful preload observes a cache hit.  Provider errors
propagate, since the step that asked for the data has to show them.
"""

import logging

from booking_client.adapters.ports import (
    Addon,
    Category,
    SchedulingProvider,
    Service,
    ServiceVariation,
    StaffMember,
)
from .cache import CacheStore, CacheTtls
from .cache_keys import addons_key, categories_key, services_key, staff_key
from .codec import (
    addons_from_json,
    catalog_to_json,
    categories_from_json,
    services_from_json,
    staff_from_json,
)

log = logging.getLogger(__name__)


def has_single_variation(service: Service) -> bool:
    return len(service.variations) <= 1


def synthesize_variation(service: Service) -> ServiceVariation:
    """The variation a single-variation service is booked with."""
    version = service.variations[0].version if service.variations else 0
    return ServiceVariation(
        variation_id=service.variation_id,
        name=service.name,
        price_cents=service.price_cents,
        duration_ms=service.duration_ms,
        version=version,
    )


class CatalogLookup:

    def __init__(
        self,
        provider: SchedulingProvider,
        cache: CacheStore,
        ttls: CacheTtls | None = None,
    ):
        self._provider = provider
        self._cache = cache
        self._ttls = ttls or CacheTtls()

    async def get_categories(self) -> list[Category]:
        """Active categories that have at least one service."""
        key = categories_key()
        categories = self._cache.get_as(key, self._ttls.categories, categories_from_json)
        if categories is None:
            log.debug("fetching categories")
            categories = await self._provider.get_categories()
            self._cache.set(key, catalog_to_json(categories), self._ttls.categories)
        return [c for c in categories if c.is_active and c.service_count > 0]

    async def get_services(self, category_id: str) -> list[Service]:
        key = services_key(category_id)
        services = self._cache.get_as(key, self._ttls.services, services_from_json)
        if services is None:
            log.debug("fetching services for category %s", category_id)
            services = await self._provider.get_services(category_id)
            self._cache.set(key, catalog_to_json(services), self._ttls.services)
        return [s for s in services if s.is_active]

    async def get_staff(self, variation_id: str) -> list[StaffMember]:
        key = staff_key(variation_id)
        cached = self._cache.get_as(key, self._ttls.staff, staff_from_json)
        if cached is not None:
            return cached
        log.debug("fetching staff for variation %s", variation_id)
        staff = await self._provider.get_staff(variation_id)
        self._cache.set(key, catalog_to_json(staff), self._ttls.staff)
        return staff

    async def get_addons(self, service_id: str) -> list[Addon]:
        key = addons_key(service_id)
        cached = self._cache.get_as(key, self._ttls.addons, addons_from_json)
        if cached is not None:
            return cached
        log.debug("fetching add-ons for service %s", service_id)
        addons = await self._provider.get_addons(service_id)
        self._cache.set(key, catalog_to_json(addons), self._ttls.addons)
        return addons
