from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime


class ProviderError(Exception):
    """The scheduling provider rejected a call or could not be reached."""


@dataclass
class Category:
    """A service category from the provider catalog."""

    category_id: str
    name: str
    description: str = ""
    is_active: bool = True
    service_count: int = 0


@dataclass
class ServiceVariation:
    """One bookable variation of a service (e.g. "60 min" vs "90 min")."""

    variation_id: str
    name: str
    price_cents: int
    duration_ms: int
    version: int = 0


@dataclass
class Service:
    """A bookable service. variation_id is the provider's default variation."""

    service_id: str
    category_id: str
    name: str
    price_cents: int
    duration_ms: int
    variation_id: str
    variations: list[ServiceVariation] = field(default_factory=list)
    description: str = ""
    is_active: bool = True


@dataclass
class StaffMember:
    staff_id: str
    name: str
    bio: str = ""


@dataclass
class Addon:
    """A supplementary unit booked alongside a service, as its own segment."""

    addon_id: str
    name: str
    variation_id: str
    version: int
    duration_ms: int
    price_cents: int


@dataclass(frozen=True)
class TimeSlot:
    """A bookable start time as returned by the provider."""

    start_time: datetime
    end_time: datetime
    available: bool = True


@dataclass
class DayAvailability:
    """Single-day availability, GET availability?date=..."""

    slots: list[TimeSlot]
    is_fully_booked: bool
    staff_available: bool


@dataclass
class ClientInfo:
    name: str
    email: str
    phone: str
    notes: str = ""


@dataclass
class ServiceSelection:
    """The base unit being booked."""

    service_id: str
    variation_id: str
    variation_version: int
    duration_ms: int
    price_cents: int
    name: str = ""


@dataclass
class AppointmentSegment:
    """One schedulable unit inside a multi-part appointment."""

    kind: str  # "service" or "addon"
    item_id: str
    variation_id: str
    variation_version: int
    staff_id: str
    duration_minutes: int
    price_cents: int


@dataclass
class AppointmentRequest:
    """Everything the provider needs to create one appointment."""

    staff_id: str
    start_time: datetime
    end_time: datetime
    service: ServiceSelection
    addons: list[Addon]
    segments: list[AppointmentSegment]
    total_duration_minutes: int
    total_price_cents: int
    client: ClientInfo | None = None
    consent_responses: dict = field(default_factory=dict)


@dataclass
class WaitlistRequest:
    """Ask to be contacted when one of the preferred dates frees up."""

    service_id: str
    variation_id: str
    client: ClientInfo
    preferred_dates: list[date]
    preferred_staff_ids: list[str] = field(default_factory=list)


class SchedulingProvider(ABC):
    """
    Port: the upstream scheduling and catalog provider.

    The booking logic depends ONLY on this interface.
    It doesn't know or care whether calls go to the real HTTP API
    or an in-memory simulator.
    """

    @abstractmethod
    async def get_categories(self) -> list[Category]:
        """Return all service categories."""
        ...

    @abstractmethod
    async def get_services(self, category_id: str) -> list[Service]:
        """Return the services of one category."""
        ...

    @abstractmethod
    async def get_staff(self, variation_id: str) -> list[StaffMember]:
        """Return staff members who can perform a service variation."""
        ...

    @abstractmethod
    async def get_addons(self, service_id: str) -> list[Addon]:
        """Return add-ons applicable to a service (may be empty)."""
        ...

    @abstractmethod
    async def search_availability(
        self,
        staff_id: str,
        service_id: str,
        variation_id: str | None,
        addon_ids: list[str],
        start: date,
        end: date,
    ) -> dict[date, list[TimeSlot]]:
        """Return available slots per date for the inclusive range start..end."""
        ...

    @abstractmethod
    async def get_day_availability(
        self,
        staff_id: str,
        service_id: str,
        variation_id: str | None,
        addon_ids: list[str],
        day: date,
    ) -> DayAvailability:
        """Return the slots of a single day."""
        ...

    @abstractmethod
    async def create_appointment(self, request: AppointmentRequest) -> str:
        """Create the appointment. Returns the provider's appointment ID."""
        ...

    @abstractmethod
    async def join_waitlist(self, request: WaitlistRequest) -> None:
        """Register a waitlist request."""
        ...
