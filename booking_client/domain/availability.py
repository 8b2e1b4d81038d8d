"""
AvailabilityResolver — batched, cached availability lookups.

A requested date window is clipped to the bookable horizon, split into
week-sized batches and resolved one batch at a time:

  1. clip to [tomorrow, today + 2 months)   (no same-day booking)
  2. split into Sunday-aligned 7-day batches
  3. serve each batch from the cache when fresh
  4. otherwise ONE provider call per batch, with a jittered pause between calls
  5. merge into a per-date map; an empty date is "fully booked"
  6. store each batch under its own key

Batches are aligned to calendar weeks rather than to the start of the
request, so two overlapping windows (a month view re-entered, a narrower
re-query) land on the same batch keys and share cached results.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Awaitable, Callable

from dateutil.relativedelta import relativedelta

from booking_client.adapters.ports import DayAvailability, SchedulingProvider, TimeSlot
from .cache import CacheStore, CacheTtls
from .cache_keys import availability_batch_key, availability_key
from .codec import (
    day_availability_from_json,
    day_availability_to_json,
    slots_by_date_from_json,
    slots_by_date_to_json,
)

log = logging.getLogger(__name__)

BATCH_DAYS = 7
BOOKING_HORIZON = relativedelta(months=2)
JITTER_SECONDS = (0.1, 0.3)


@dataclass(frozen=True)
class DateWindow:
    """Inclusive span of calendar dates. Empty when start > end."""

    start: date
    end: date

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> list[date]:
        if self.is_empty:
            return []
        return [self.start + timedelta(days=i) for i in range((self.end - self.start).days + 1)]


class DateStatus(str, Enum):
    AVAILABLE = "available"
    FULLY_BOOKED = "fully_booked"
    UNRESOLVED = "unresolved"     # the batch covering it failed
    NOT_CHECKED = "not_checked"   # never part of a resolved window


@dataclass
class AvailabilityResult:
    slots: dict[date, list[TimeSlot]] = field(default_factory=dict)
    unresolved: set[date] = field(default_factory=set)
    first_batch_failed: bool = False
    network_calls: int = 0
    cache_hits: int = 0

    def status(self, day: date) -> DateStatus:
        if day in self.slots:
            return DateStatus.AVAILABLE if self.slots[day] else DateStatus.FULLY_BOOKED
        if day in self.unresolved:
            return DateStatus.UNRESOLVED
        return DateStatus.NOT_CHECKED

    @property
    def available_dates(self) -> list[date]:
        return sorted(d for d, s in self.slots.items() if s)

    @property
    def fully_booked_dates(self) -> list[date]:
        return sorted(d for d, s in self.slots.items() if not s)


def bookable_window(today: date) -> DateWindow:
    """Tomorrow up to (not including) the same day two months ahead."""
    return DateWindow(today + timedelta(days=1), today + BOOKING_HORIZON - timedelta(days=1))


def clip_window(window: DateWindow, today: date) -> DateWindow:
    bounds = bookable_window(today)
    return DateWindow(max(window.start, bounds.start), min(window.end, bounds.end))


def week_batches(window: DateWindow, bounds: DateWindow) -> list[DateWindow]:
    """Sunday-aligned weeks touching window, each clipped to bounds."""
    if window.is_empty:
        return []
    week_start = window.start - timedelta(days=(window.start.weekday() + 1) % 7)
    batches = []
    while week_start <= window.end:
        week_end = week_start + timedelta(days=BATCH_DAYS - 1)
        batch = DateWindow(max(week_start, bounds.start), min(week_end, bounds.end))
        if not batch.is_empty:
            batches.append(batch)
        week_start += timedelta(days=BATCH_DAYS)
    return batches


def initial_month(today: date) -> date:
    """First day of the month the calendar opens on.

    On the last day of a month nothing in it is bookable any more, so the
    calendar opens on the next month.
    """
    if (today + timedelta(days=1)).month != today.month:
        return (today + timedelta(days=1)).replace(day=1)
    return today.replace(day=1)


def month_window(month_start: date) -> DateWindow:
    return DateWindow(month_start, month_start + relativedelta(months=1) - timedelta(days=1))


class AvailabilityResolver:
    """
    Resolve availability for a staff/service pair through the shared cache.

    Concurrent resolve() calls for overlapping windows are NOT coalesced:
    each may issue its own provider call for the same batch, and the later
    cache write wins with equivalent data.
    """

    def __init__(
        self,
        provider: SchedulingProvider,
        cache: CacheStore,
        ttls: CacheTtls | None = None,
        today: Callable[[], date] = date.today,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: tuple[float, float] = JITTER_SECONDS,
        rng: random.Random | None = None,
    ):
        self._provider = provider
        self._cache = cache
        self._ttls = ttls or CacheTtls()
        self._today = today
        self._sleep = sleep
        self._jitter = jitter
        self._rng = rng or random.Random()

    async def resolve(
        self,
        staff_id: str,
        service_id: str,
        variation_id: str | None,
        addon_ids: list[str],
        window: DateWindow,
    ) -> AvailabilityResult:
        today = self._today()
        effective = clip_window(window, today)
        result = AvailabilityResult()
        if effective.is_empty:
            log.debug("window %s..%s has no bookable dates", window.start, window.end)
            return result

        attempted = 0
        for batch in week_batches(effective, bookable_window(today)):
            key = availability_batch_key(
                staff_id, service_id, variation_id, addon_ids, batch.start, batch.end,
            )
            cached = self._cache.get_as(key, self._ttls.availability, slots_by_date_from_json)
            if cached is not None:
                result.cache_hits += 1
                self._merge(result, batch, effective, cached)
                continue

            if attempted:
                await self._sleep(self._rng.uniform(*self._jitter))
            attempted += 1
            result.network_calls += 1

            try:
                slots_by_date = await self._provider.search_availability(
                    staff_id, service_id, variation_id, list(addon_ids), batch.start, batch.end,
                )
            except Exception as exc:
                log.error(
                    "availability batch %s..%s failed for staff=%s service=%s: %s",
                    batch.start, batch.end, staff_id, service_id, exc,
                )
                if attempted == 1:
                    result.first_batch_failed = True
                result.unresolved.update(d for d in batch.days() if d in effective)
                continue

            # Dates the provider left out of a successful batch have no slots.
            complete = {d: list(slots_by_date.get(d, [])) for d in batch.days()}
            self._cache.set(key, slots_by_date_to_json(complete), self._ttls.availability)
            self._merge(result, batch, effective, complete)

        log.info(
            "availability staff=%s service=%s %s..%s: %d available, %d fully booked, "
            "%d unresolved (%d call(s), %d cached batch(es))",
            staff_id, service_id, effective.start, effective.end,
            len(result.available_dates), len(result.fully_booked_dates),
            len(result.unresolved), result.network_calls, result.cache_hits,
        )
        return result

    @staticmethod
    def _merge(
        result: AvailabilityResult,
        batch: DateWindow,
        effective: DateWindow,
        slots_by_date: dict[date, list[TimeSlot]],
    ) -> None:
        for day in batch.days():
            if day in effective:
                result.slots[day] = slots_by_date.get(day, [])

    async def resolve_day(
        self,
        staff_id: str,
        service_id: str,
        variation_id: str | None,
        addon_ids: list[str],
        day: date,
    ) -> DayAvailability:
        """Slots for one selected date. Provider errors propagate to the caller."""
        if day not in bookable_window(self._today()):
            return DayAvailability(slots=[], is_fully_booked=False, staff_available=False)

        key = availability_key(staff_id, service_id, day, variation_id, addon_ids)
        cached = self._cache.get_as(key, self._ttls.availability, day_availability_from_json)
        if cached is not None:
            return cached

        availability = await self._provider.get_day_availability(
            staff_id, service_id, variation_id, list(addon_ids), day,
        )
        self._cache.set(key, day_availability_to_json(availability), self._ttls.availability)
        return availability
