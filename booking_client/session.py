"""
Booking session — drives one customer through the booking steps.

Wires together the catalog lookups, the availability resolver, the
preloader and the assembler:

  category → service → [variation] → staff → [addons] → datetime
           → client → consent → summary → confirmed

Each step transition asks the Preloader to warm the cache for what the user
is likely to need next.  Preloads run as fire-and-forget tasks; they are
never awaited by the flow and never cancelled.  The only blocking error the
user sees is a failed submission, which leaves every collected value in
place so the summary can be confirmed again.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Literal

from booking_client.adapters.ports import (
    Addon,
    Category,
    ClientInfo,
    DayAvailability,
    SchedulingProvider,
    Service,
    ServiceVariation,
    StaffMember,
    WaitlistRequest,
)
from booking_client.domain.appointment import AssemblyError, assemble
from booking_client.domain.availability import (
    JITTER_SECONDS,
    AvailabilityResolver,
    AvailabilityResult,
    DateStatus,
    bookable_window,
    initial_month,
    month_window,
)
from booking_client.domain.cache import CacheStore, CacheTtls
from booking_client.domain.catalog import CatalogLookup, has_single_variation, synthesize_variation
from booking_client.domain.preloader import Preloader, PreloadResult
from booking_client.domain.steps import (
    BookingStep,
    InvalidStepError,
    StepContext,
    next_step,
    previous_step,
)

log = logging.getLogger(__name__)

AVAILABILITY_ERROR = "Failed to load availability. Please try again."


@dataclass
class SessionConfig:
    provider: SchedulingProvider
    cache: CacheStore
    ttls: CacheTtls = field(default_factory=CacheTtls)
    today: Callable[[], date] = date.today
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    jitter: tuple[float, float] = JITTER_SECONDS
    warm_services: int = 3       # services whose staff is preloaded
    warm_categories: int = 1     # categories whose services are preloaded
    warm_days: int = 2           # bookable days whose slots are preloaded


@dataclass
class BookingDraft:
    """Everything collected so far. Survives a failed submission."""

    category_id: str | None = None
    service: Service | None = None
    variation: ServiceVariation | None = None
    staff: StaffMember | None = None
    addons: list[Addon] = field(default_factory=list)
    start_time: datetime | None = None
    client: ClientInfo | None = None
    consent_responses: dict = field(default_factory=dict)


@dataclass
class SubmissionResult:
    outcome: Literal["confirmed", "failed"]
    appointment_id: str = ""
    error: str = ""


class BookingSession:

    def __init__(self, config: SessionConfig):
        self._cfg = config
        self.catalog = CatalogLookup(config.provider, config.cache, config.ttls)
        self.resolver = AvailabilityResolver(
            config.provider,
            config.cache,
            config.ttls,
            today=config.today,
            sleep=config.sleep,
            jitter=config.jitter,
        )
        self.preloader = Preloader(config.provider, config.cache, config.ttls)

        self.step = BookingStep.CATEGORY
        self.context = StepContext()
        self.draft = BookingDraft()
        self.error = ""
        self.appointment_id = ""
        self.services: list[Service] = []
        self.available_addons: list[Addon] = []
        self.last_availability: AvailabilityResult | None = None
        self.preload_results: list[PreloadResult] = []
        self._addon_checks: dict[str, list[Addon]] = {}
        self._preloads: set[asyncio.Task] = set()

    # -- preloading ----------------------------------------------------------

    def _preload(self, coro: Awaitable[PreloadResult]) -> None:
        task = asyncio.ensure_future(coro)
        self._preloads.add(task)
        task.add_done_callback(self._preload_done)

    def _preload_done(self, task: asyncio.Task) -> None:
        self._preloads.discard(task)
        if not task.cancelled():
            self.preload_results.append(task.result())

    async def drain_preloads(self) -> list[PreloadResult]:
        """Wait for every in-flight preload. Returns all outcomes so far."""
        while self._preloads:
            await asyncio.gather(*list(self._preloads))
        return list(self.preload_results)

    def warm_up(self) -> None:
        """Start loading categories before the booking flow is opened."""
        self._preload(self.preloader.preload_categories())

    def _on_enter(self, step: BookingStep) -> None:
        draft = self.draft
        if step is BookingStep.SERVICE:
            for service in self.services[: self._cfg.warm_services]:
                self._preload(self.preloader.preload_staff_for_variation(service.variation_id))
        elif step is BookingStep.STAFF and draft.service:
            self._preload(self.preloader.preload_addons_for_service(draft.service.service_id))
        elif step is BookingStep.ADDONS and draft.service and draft.staff:
            first = bookable_window(self._cfg.today()).start
            for offset in range(self._cfg.warm_days):
                self._preload(self.preloader.preload_availability(
                    draft.service.service_id,
                    draft.staff.staff_id,
                    first + timedelta(days=offset),
                    draft.variation.variation_id if draft.variation else None,
                ))

    # -- navigation ----------------------------------------------------------

    def _require(self, *steps: BookingStep) -> None:
        if self.step not in steps:
            raise InvalidStepError(
                f"Action not valid in step '{self.step.value}'; "
                f"expected one of {[s.value for s in steps]}"
            )

    def _advance(self) -> BookingStep:
        old = self.step
        self.step = next_step(old, self.context)
        self.error = ""
        log.info("step %s -> %s", old.value, self.step.value)
        self._on_enter(self.step)
        return self.step

    def back(self) -> BookingStep:
        """Go to the previous step of the current sequence."""
        if self.step is BookingStep.CONFIRMED:
            raise InvalidStepError("The booking is already confirmed")
        previous = previous_step(self.step, self.context)
        if previous is None:
            return self.step
        log.info("step %s <- %s", previous.value, self.step.value)
        self.step = previous
        self.error = ""
        return self.step

    # -- steps ---------------------------------------------------------------

    async def start(self) -> list[Category]:
        """Categories for the first step; warms services of the first ones."""
        self._require(BookingStep.CATEGORY)
        categories = await self.catalog.get_categories()
        for category in categories[: self._cfg.warm_categories]:
            self._preload(self.preloader.preload_services_for_category(category.category_id))
        return categories

    async def select_category(self, category_id: str) -> list[Service]:
        self._require(BookingStep.CATEGORY)
        self.services = await self.catalog.get_services(category_id)
        self.draft.category_id = category_id
        self._advance()
        return self.services

    async def select_service(self, service: Service) -> list[StaffMember] | list[ServiceVariation]:
        """Returns the variations to choose from, or the staff list when bypassed."""
        self._require(BookingStep.SERVICE)
        self.draft.service = service
        self.draft.addons = []
        self.available_addons = []
        single = has_single_variation(service)
        self.context = StepContext(has_addons=False, single_variation=single)

        if single:
            self.draft.variation = synthesize_variation(service)
            self._advance()
            return await self.catalog.get_staff(self.draft.variation.variation_id)

        self.draft.variation = None
        self._advance()
        return list(service.variations)

    async def select_variation(self, variation: ServiceVariation) -> list[StaffMember]:
        self._require(BookingStep.VARIATION)
        self.draft.variation = variation
        self._advance()
        return await self.catalog.get_staff(variation.variation_id)

    async def select_staff(self, staff: StaffMember) -> list[Addon]:
        """Decide once per service whether the add-on step exists, then advance."""
        self._require(BookingStep.STAFF)
        service = self.draft.service
        if service is None:
            raise InvalidStepError("No service selected")
        self.draft.staff = staff

        if service.service_id not in self._addon_checks:
            try:
                self._addon_checks[service.service_id] = await self.catalog.get_addons(
                    service.service_id
                )
            except Exception as exc:
                log.warning("add-on lookup failed for service %s: %s", service.service_id, exc)
                self._addon_checks[service.service_id] = []

        self.available_addons = self._addon_checks[service.service_id]
        self.context = StepContext(
            has_addons=bool(self.available_addons),
            single_variation=self.context.single_variation,
        )
        if not self.available_addons:
            self.draft.addons = []
        self._advance()
        return self.available_addons

    def select_addons(self, addons: list[Addon]) -> None:
        self._require(BookingStep.ADDONS)
        known = {a.addon_id for a in self.available_addons}
        unknown = [a.addon_id for a in addons if a.addon_id not in known]
        if unknown:
            raise ValueError(f"Add-ons not offered for this service: {unknown}")
        self.draft.addons = list(addons)
        self._advance()

    async def load_month(self, month_start: date | None = None) -> AvailabilityResult:
        """Resolve the calendar month shown on the date/time step."""
        self._require(BookingStep.DATETIME)
        month_start = month_start or initial_month(self._cfg.today())
        draft = self.draft
        result = await self.resolver.resolve(
            draft.staff.staff_id,
            draft.service.service_id,
            draft.variation.variation_id if draft.variation else None,
            [a.addon_id for a in draft.addons],
            month_window(month_start),
        )
        self.last_availability = result
        self.error = AVAILABILITY_ERROR if result.first_batch_failed else ""
        return result

    async def slots_for(self, day: date) -> DayAvailability:
        self._require(BookingStep.DATETIME)
        draft = self.draft
        return await self.resolver.resolve_day(
            draft.staff.staff_id,
            draft.service.service_id,
            draft.variation.variation_id if draft.variation else None,
            [a.addon_id for a in draft.addons],
            day,
        )

    def select_time(self, start_time: datetime) -> None:
        self._require(BookingStep.DATETIME)
        self.draft.start_time = start_time
        self._advance()

    async def join_waitlist(self, client: ClientInfo, preferred_dates: list[date]) -> None:
        """Waitlist for dates the last resolved month showed as fully booked."""
        self._require(BookingStep.DATETIME)
        if not preferred_dates:
            raise ValueError("Please select at least one preferred date")
        result = self.last_availability
        not_booked = [
            d for d in preferred_dates
            if result is None or result.status(d) is not DateStatus.FULLY_BOOKED
        ]
        if not_booked:
            raise ValueError(f"Dates are not fully booked: {[d.isoformat() for d in not_booked]}")

        draft = self.draft
        await self._cfg.provider.join_waitlist(WaitlistRequest(
            service_id=draft.service.service_id,
            variation_id=draft.variation.variation_id if draft.variation else "",
            client=client,
            preferred_dates=sorted(preferred_dates),
            preferred_staff_ids=[draft.staff.staff_id] if draft.staff else [],
        ))
        log.info("waitlist joined for %d date(s), service=%s",
                 len(preferred_dates), draft.service.service_id)

    def submit_client(self, client: ClientInfo) -> None:
        self._require(BookingStep.CLIENT)
        missing = [f for f in ("name", "email", "phone") if not getattr(client, f).strip()]
        if missing:
            raise ValueError(f"Missing client details: {missing}")
        self.draft.client = client
        self._advance()

    def submit_consent(self, responses: dict) -> None:
        self._require(BookingStep.CONSENT)
        self.draft.consent_responses = dict(responses)
        self._advance()

    async def confirm(self) -> SubmissionResult:
        """Assemble and create the appointment. Failures keep the draft intact."""
        self._require(BookingStep.SUMMARY)
        draft = self.draft
        try:
            request = assemble(
                draft.service,
                draft.variation,
                draft.addons,
                draft.staff,
                draft.start_time,
                client=draft.client,
                consent_responses=draft.consent_responses,
            )
        except AssemblyError as exc:
            log.error("assembly failed: %s", exc)
            self.error = str(exc)
            return SubmissionResult(outcome="failed", error=self.error)

        try:
            appointment_id = await self._cfg.provider.create_appointment(request)
        except Exception as exc:
            log.error("appointment creation failed: %s", exc)
            self.error = f"Could not create the appointment: {exc}"
            return SubmissionResult(outcome="failed", error=self.error)

        self.appointment_id = appointment_id
        self._advance()
        log.info(
            "appointment %s created: %d segment(s), %d min, %d cents",
            appointment_id, len(request.segments),
            request.total_duration_minutes, request.total_price_cents,
        )
        return SubmissionResult(outcome="confirmed", appointment_id=appointment_id)
