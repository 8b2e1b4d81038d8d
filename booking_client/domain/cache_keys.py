"""
Typed cache key builders.

Every cache read and write goes through one of these functions so that the
resolver, the preloader and the catalog lookups derive byte-identical keys
for the same query.
"""

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class CacheKey:
    namespace: str
    parts: tuple[str, ...] = ()

    def __str__(self) -> str:
        return "_".join((self.namespace, *self.parts))


def categories_key() -> CacheKey:
    return CacheKey("categories")


def services_key(category_id: str) -> CacheKey:
    return CacheKey("services", (category_id,))


def staff_key(variation_id: str) -> CacheKey:
    return CacheKey("staff", (variation_id,))


def addons_key(service_id: str) -> CacheKey:
    return CacheKey("addons", (service_id,))


def availability_key(
    staff_id: str,
    service_id: str,
    day: date,
    variation_id: str | None = None,
    addon_ids: list[str] | None = None,
) -> CacheKey:
    """Single-day slot list, as shown in the time-slot panel.

    Variation and add-ons change the slot lengths the provider returns, so
    they are part of the key whenever the query carries them.
    """
    parts = (staff_id, service_id, day.isoformat())
    if variation_id or addon_ids:
        parts += (variation_id or "-", ",".join(sorted(addon_ids or [])) or "-")
    return CacheKey("availability", parts)


def availability_batch_key(
    staff_id: str,
    service_id: str,
    variation_id: str | None,
    addon_ids: list[str],
    start: date,
    end: date,
) -> CacheKey:
    """One resolver batch. Add-on order does not change the key."""
    return CacheKey(
        "availability",
        (
            staff_id,
            service_id,
            variation_id or "-",
            ",".join(sorted(addon_ids)) or "-",
            start.isoformat(),
            end.isoformat(),
        ),
    )
