from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone

from .ports import (
    Addon,
    AppointmentRequest,
    Category,
    DayAvailability,
    ProviderError,
    SchedulingProvider,
    Service,
    StaffMember,
    TimeSlot,
    WaitlistRequest,
)


class SimulatorSchedulingProvider(SchedulingProvider):
    """
    In-memory fake for testing. No mocking framework needed.

    Test helpers:
        inject_category() / inject_service() / inject_staff() / inject_addon()
                                — populate the catalog
        inject_open_day()       — give a staff member bookable slots on a date
        fail_method()           — make every call to a method raise ProviderError
        fail_availability_on()  — make batches covering a date raise ProviderError
        calls                   — list of (method, *args) tuples, in call order
        created / waitlist      — requests recorded by the write methods
    """

    def __init__(self):
        self._categories: list[Category] = []
        self._services: dict[str, list[Service]] = {}
        self._staff: dict[str, list[StaffMember]] = {}
        self._addons: dict[str, list[Addon]] = {}
        self._slots: dict[tuple[str, date], list[TimeSlot]] = {}
        self._failing_methods: set[str] = set()
        self._failing_days: set[date] = set()
        self.calls: list[tuple] = []
        self.created: list[AppointmentRequest] = []
        self.waitlist: list[WaitlistRequest] = []
        self._next_id = 1

    # -- test helpers --------------------------------------------------------

    def inject_category(self, category: Category) -> None:
        self._categories.append(category)

    def inject_service(self, service: Service) -> None:
        self._services.setdefault(service.category_id, []).append(service)

    def inject_staff(self, variation_id: str, member: StaffMember) -> None:
        self._staff.setdefault(variation_id, []).append(member)

    def inject_addon(self, service_id: str, addon: Addon) -> None:
        self._addons.setdefault(service_id, []).append(addon)

    def inject_open_day(
        self,
        staff_id: str,
        day: date,
        start_times: list[str],
        duration_minutes: int = 60,
    ) -> None:
        """Test helper: start_times are "HH:MM" in UTC."""
        slots = []
        for hhmm in start_times:
            start = datetime.combine(day, time.fromisoformat(hhmm), tzinfo=timezone.utc)
            slots.append(TimeSlot(start, start + timedelta(minutes=duration_minutes)))
        self._slots[(staff_id, day)] = slots

    def fail_method(self, method: str) -> None:
        self._failing_methods.add(method)

    def fail_availability_on(self, day: date) -> None:
        self._failing_days.add(day)

    def calls_to(self, method: str) -> int:
        return sum(1 for c in self.calls if c[0] == method)

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if method in self._failing_methods:
            raise ProviderError(f"simulated failure in {method}")

    # -- SchedulingProvider --------------------------------------------------

    async def get_categories(self) -> list[Category]:
        self._record("get_categories")
        return [
            replace(c, service_count=len(self._services.get(c.category_id, [])))
            for c in self._categories
        ]

    async def get_services(self, category_id: str) -> list[Service]:
        self._record("get_services", category_id)
        return list(self._services.get(category_id, []))

    async def get_staff(self, variation_id: str) -> list[StaffMember]:
        self._record("get_staff", variation_id)
        return list(self._staff.get(variation_id, []))

    async def get_addons(self, service_id: str) -> list[Addon]:
        self._record("get_addons", service_id)
        return list(self._addons.get(service_id, []))

    async def search_availability(
        self,
        staff_id: str,
        service_id: str,
        variation_id: str | None,
        addon_ids: list[str],
        start: date,
        end: date,
    ) -> dict[date, list[TimeSlot]]:
        self._record("search_availability", staff_id, service_id, start, end)
        days = [start + timedelta(days=i) for i in range((end - start).days + 1)]
        if any(d in self._failing_days for d in days):
            raise ProviderError(f"simulated failure for {start}..{end}")
        return {d: list(self._slots.get((staff_id, d), [])) for d in days}

    async def get_day_availability(
        self,
        staff_id: str,
        service_id: str,
        variation_id: str | None,
        addon_ids: list[str],
        day: date,
    ) -> DayAvailability:
        self._record("get_day_availability", staff_id, service_id, day)
        if day in self._failing_days:
            raise ProviderError(f"simulated failure for {day}")
        slots = list(self._slots.get((staff_id, day), []))
        return DayAvailability(slots=slots, is_fully_booked=not slots, staff_available=True)

    async def create_appointment(self, request: AppointmentRequest) -> str:
        self._record("create_appointment", request.staff_id, request.start_time)
        self.created.append(request)
        appointment_id = f"appt-{self._next_id}"
        self._next_id += 1
        return appointment_id

    async def join_waitlist(self, request: WaitlistRequest) -> None:
        self._record("join_waitlist", request.service_id)
        self.waitlist.append(request)
