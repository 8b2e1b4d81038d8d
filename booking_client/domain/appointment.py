"""
AppointmentAssembler — turn a selection into one multi-segment request.

Pure data in, data out.  The provider expresses duration in milliseconds and
price in minor currency units; segments carry whole minutes.  The base
service is always the first segment, add-ons follow in selection order and
share the staff member and a contiguous start time.
"""

from datetime import datetime, timedelta

from booking_client.adapters.ports import (
    Addon,
    AppointmentRequest,
    AppointmentSegment,
    ClientInfo,
    Service,
    ServiceSelection,
    ServiceVariation,
    StaffMember,
)

MS_PER_MINUTE = 60_000


class AssemblyError(Exception):
    """The selection cannot be turned into a valid appointment request."""


def ms_to_minutes(duration_ms: int) -> int:
    """Whole minutes, rounding partial minutes up."""
    return -(-duration_ms // MS_PER_MINUTE)


def assemble(
    service: Service,
    variation: ServiceVariation | None,
    addons: list[Addon],
    staff: StaffMember | None,
    start_time: datetime | None,
    client: ClientInfo | None = None,
    consent_responses: dict | None = None,
) -> AppointmentRequest:
    if variation is None:
        raise AssemblyError(f"No variation selected for service {service.service_id}")
    if staff is None:
        raise AssemblyError("No staff member selected")
    if start_time is None:
        raise AssemblyError("No start time selected")

    base_minutes = ms_to_minutes(variation.duration_ms)
    if base_minutes <= 0:
        raise AssemblyError(
            f"Variation {variation.variation_id} has no duration; "
            "the provider rejects zero-length segments"
        )

    segments = [
        AppointmentSegment(
            kind="service",
            item_id=service.service_id,
            variation_id=variation.variation_id,
            variation_version=variation.version,
            staff_id=staff.staff_id,
            duration_minutes=base_minutes,
            price_cents=variation.price_cents,
        )
    ]
    total_minutes = base_minutes
    total_price = variation.price_cents

    for addon in addons:
        minutes = ms_to_minutes(addon.duration_ms)
        total_minutes += minutes
        total_price += addon.price_cents
        if minutes <= 0:
            # Informational only: priced, but not a schedulable segment.
            continue
        segments.append(
            AppointmentSegment(
                kind="addon",
                item_id=addon.addon_id,
                variation_id=addon.variation_id,
                variation_version=addon.version,
                staff_id=staff.staff_id,
                duration_minutes=minutes,
                price_cents=addon.price_cents,
            )
        )

    return AppointmentRequest(
        staff_id=staff.staff_id,
        start_time=start_time,
        end_time=start_time + timedelta(minutes=total_minutes),
        service=ServiceSelection(
            service_id=service.service_id,
            variation_id=variation.variation_id,
            variation_version=variation.version,
            duration_ms=variation.duration_ms,
            price_cents=variation.price_cents,
            name=service.name,
        ),
        addons=list(addons),
        segments=segments,
        total_duration_minutes=total_minutes,
        total_price_cents=total_price,
        client=client,
        consent_responses=dict(consent_responses or {}),
    )
