"""
JSON shapes for cached provider data.

The cache only holds JSON, so every dataclass that goes into it is flattened
here and rebuilt on the way out.
"""

from dataclasses import asdict
from datetime import date, datetime

from booking_client.adapters.ports import (
    Addon,
    Category,
    DayAvailability,
    Service,
    ServiceVariation,
    StaffMember,
    TimeSlot,
)


def parse_instant(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


def slot_to_json(slot: TimeSlot) -> dict:
    return {
        "startTime": slot.start_time.isoformat(),
        "endTime": slot.end_time.isoformat(),
        "available": slot.available,
    }


def slot_from_json(data: dict) -> TimeSlot:
    return TimeSlot(
        start_time=parse_instant(data["startTime"]),
        end_time=parse_instant(data["endTime"]),
        available=bool(data.get("available", True)),
    )


def slots_by_date_to_json(slots_by_date: dict[date, list[TimeSlot]]) -> dict:
    return {
        day.isoformat(): [slot_to_json(s) for s in slots]
        for day, slots in slots_by_date.items()
    }


def slots_by_date_from_json(data: dict) -> dict[date, list[TimeSlot]]:
    return {
        date.fromisoformat(day): [slot_from_json(s) for s in slots]
        for day, slots in data.items()
    }


def day_availability_to_json(day: DayAvailability) -> dict:
    return {
        "slots": [slot_to_json(s) for s in day.slots],
        "isFullyBooked": day.is_fully_booked,
        "staffAvailable": day.staff_available,
    }


def day_availability_from_json(data: dict) -> DayAvailability:
    return DayAvailability(
        slots=[slot_from_json(s) for s in data.get("slots", [])],
        is_fully_booked=bool(data.get("isFullyBooked", False)),
        staff_available=bool(data.get("staffAvailable", True)),
    )


def catalog_to_json(items: list) -> list[dict]:
    """Categories, services, staff and add-ons are plain dataclasses."""
    return [asdict(item) for item in items]


def categories_from_json(data: list[dict]) -> list[Category]:
    return [Category(**d) for d in data]


def services_from_json(data: list[dict]) -> list[Service]:
    services = []
    for d in data:
        variations = [ServiceVariation(**v) for v in d.get("variations", [])]
        services.append(Service(**{**d, "variations": variations}))
    return services


def staff_from_json(data: list[dict]) -> list[StaffMember]:
    return [StaffMember(**d) for d in data]


def addons_from_json(data: list[dict]) -> list[Addon]:
    return [Addon(**d) for d in data]
