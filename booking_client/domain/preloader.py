"""
Preloader — speculative cache warming ahead of the user's next step.

Every warmer checks the cache with exactly the key and TTL its on-demand
consumer uses, so a warm entry turns the consumer's lookup into a hit.
Warmers never raise: a failed warm is reported as PreloadResult("failed")
and the consumer simply fetches again when it runs.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Literal

from booking_client.adapters.ports import SchedulingProvider
from .cache import CacheStore, CacheTtls
from .cache_keys import (
    CacheKey,
    addons_key,
    availability_key,
    categories_key,
    services_key,
    staff_key,
)
from .codec import catalog_to_json, day_availability_to_json

log = logging.getLogger(__name__)


@dataclass
class PreloadResult:
    outcome: Literal[
        "ok",       # fetched and cached
        "skipped",  # cache already warm, no call made
        "failed",   # call failed; nothing cached
    ]
    key: str
    reason: str = ""


class Preloader:

    def __init__(
        self,
        provider: SchedulingProvider,
        cache: CacheStore,
        ttls: CacheTtls | None = None,
    ):
        self._provider = provider
        self._cache = cache
        self._ttls = ttls or CacheTtls()

    async def _warm(self, key: CacheKey, ttl: float, fetch) -> PreloadResult:
        if self._cache.get(key, ttl) is not None:
            log.debug("preload skipped, already warm: %s", key)
            return PreloadResult(outcome="skipped", key=str(key))
        try:
            value = await fetch()
        except Exception as exc:
            log.warning("preload failed for %s: %s", key, exc)
            return PreloadResult(outcome="failed", key=str(key), reason=str(exc))
        self._cache.set(key, value, ttl)
        log.debug("preloaded %s", key)
        return PreloadResult(outcome="ok", key=str(key))

    async def preload_categories(self) -> PreloadResult:
        async def fetch():
            return catalog_to_json(await self._provider.get_categories())

        return await self._warm(categories_key(), self._ttls.categories, fetch)

    async def preload_services_for_category(self, category_id: str) -> PreloadResult:
        async def fetch():
            return catalog_to_json(await self._provider.get_services(category_id))

        return await self._warm(services_key(category_id), self._ttls.services, fetch)

    async def preload_staff_for_variation(self, variation_id: str) -> PreloadResult:
        async def fetch():
            return catalog_to_json(await self._provider.get_staff(variation_id))

        return await self._warm(staff_key(variation_id), self._ttls.staff, fetch)

    async def preload_addons_for_service(self, service_id: str) -> PreloadResult:
        async def fetch():
            return catalog_to_json(await self._provider.get_addons(service_id))

        return await self._warm(addons_key(service_id), self._ttls.addons, fetch)

    async def preload_availability(
        self,
        service_id: str,
        staff_id: str,
        day: date,
        variation_id: str | None = None,
        addon_ids: list[str] | None = None,
    ) -> PreloadResult:
        async def fetch():
            availability = await self._provider.get_day_availability(
                staff_id, service_id, variation_id, list(addon_ids or []), day,
            )
            return day_availability_to_json(availability)

        return await self._warm(
            availability_key(staff_id, service_id, day, variation_id, addon_ids),
            self._ttls.availability,
            fetch,
        )
