#!/usr/bin/env python3
"""
Availability CLI — inspect the provider's calendar through the booking cache.

Usage (from project root):
    python scripts/availability.py show STAFF SERVICE [VARIATION]   # two-month calendar
    python scripts/availability.py day STAFF SERVICE 2026-05-04     # slots of one date
    python scripts/availability.py clear                            # drop the whole cache
    python scripts/availability.py clear staff                      # drop one namespace

Environment variables:
    BOOKING_PROVIDER          - "http" or "simulator" (default: simulator)
    BOOKING_PROVIDER_URL      - base URL of the booking API (http only)
    BOOKING_PROVIDER_API_KEY  - bearer token (http only, optional)
    BOOKING_CACHE_BACKEND     - "sqlite" or "memory" (default: sqlite)
    BOOKING_CACHE_PATH        - SQLite path (default: data/booking_cache.db)
    BOOKING_TTL_*             - per-namespace TTL overrides, in seconds
    LOG_LEVEL                 - default: INFO
"""

import asyncio
import logging
import os
import sys
from datetime import date

# Allow running as `python scripts/availability.py` from project root.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from booking_client.adapters.factory import create_cache_store, create_provider, load_ttls
from booking_client.domain.availability import (
    AvailabilityResolver,
    DateStatus,
    bookable_window,
)
from booking_client.domain.cache import CacheStore

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s  %(levelname)-7s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger(__name__)

NAMESPACES = ("categories", "services", "staff", "addons", "availability")

_MARKS = {
    DateStatus.AVAILABLE: "open",
    DateStatus.FULLY_BOOKED: "FULL (waitlist)",
    DateStatus.UNRESOLVED: "?  (fetch failed)",
    DateStatus.NOT_CHECKED: "-",
}


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        print(f"ERROR: environment variable {name!r} is not set.", file=sys.stderr)
        sys.exit(1)
    return value


def _resolver(cache: CacheStore) -> AvailabilityResolver:
    if os.environ.get("BOOKING_PROVIDER", "simulator") == "http":
        _require_env("BOOKING_PROVIDER_URL")
    return AvailabilityResolver(create_provider(), cache, load_ttls())


async def show_calendar(cache: CacheStore, staff_id: str, service_id: str,
                        variation_id: str | None) -> None:
    resolver = _resolver(cache)
    window = bookable_window(date.today())
    result = await resolver.resolve(staff_id, service_id, variation_id, [], window)
    if result.first_batch_failed:
        print("Failed to load availability. Please try again.")

    print(f"\n{'Date':<12}  {'Day':<3}  {'Slots':>5}  Status")
    print("-" * 44)
    for day in window.days():
        status = result.status(day)
        count = len(result.slots.get(day, []))
        print(f"{day.isoformat():<12}  {day.strftime('%a'):<3}  {count:>5}  {_MARKS[status]}")
    print(f"\n{result.network_calls} provider call(s), {result.cache_hits} cached batch(es)\n")


async def show_day(cache: CacheStore, staff_id: str, service_id: str, day: date) -> None:
    resolver = _resolver(cache)
    availability = await resolver.resolve_day(staff_id, service_id, None, [], day)
    if not availability.slots:
        print("Fully booked." if availability.is_fully_booked else "No slots for this date.")
        return
    for slot in availability.slots:
        print(f"  {slot.start_time:%H:%M} - {slot.end_time:%H:%M}")


def clear(cache: CacheStore, namespace: str | None) -> None:
    if namespace is None:
        removed = cache.clear_all()
    elif namespace in NAMESPACES:
        removed = cache.remove_namespace(namespace)
    else:
        print(f"Unknown namespace {namespace!r}; expected one of {', '.join(NAMESPACES)}")
        sys.exit(1)
    print(f"Removed {removed} cache entr{'y' if removed == 1 else 'ies'}.")


def main() -> None:
    args = sys.argv[1:]
    if not args:
        print(__doc__)
        sys.exit(1)

    cache = create_cache_store()
    cmd = args[0]

    if cmd == "show" and len(args) in (3, 4):
        asyncio.run(show_calendar(cache, args[1], args[2], args[3] if len(args) == 4 else None))
    elif cmd == "day" and len(args) == 4:
        asyncio.run(show_day(cache, args[1], args[2], date.fromisoformat(args[3])))
    elif cmd == "clear" and len(args) in (1, 2):
        clear(cache, args[1] if len(args) == 2 else None)
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
