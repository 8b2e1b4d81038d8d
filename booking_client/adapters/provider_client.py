import asyncio
import uuid
from datetime import date

import requests

from booking_client.domain.codec import slot_from_json
from .ports import (
    Addon,
    AppointmentRequest,
    Category,
    DayAvailability,
    ProviderError,
    SchedulingProvider,
    Service,
    ServiceVariation,
    StaffMember,
    TimeSlot,
    WaitlistRequest,
)

DEFAULT_TIMEOUT = 30


def _addons_param(addon_ids: list[str]) -> dict:
    return {"addons": ",".join(addon_ids)} if addon_ids else {}


def appointment_payload(request: AppointmentRequest) -> dict:
    """POST /appointments body. Segments keep their order: base service first."""
    client = request.client
    return {
        "staffId": request.staff_id,
        "startTime": request.start_time.isoformat(),
        "endTime": request.end_time.isoformat(),
        "serviceId": request.service.service_id,
        "variationId": request.service.variation_id,
        "variationVersion": request.service.variation_version,
        "addons": [a.addon_id for a in request.addons],
        "appointmentSegments": [
            {
                "serviceVariationId": s.variation_id,
                "serviceVariationVersion": s.variation_version,
                "teamMemberId": s.staff_id,
                "durationMinutes": s.duration_minutes,
            }
            for s in request.segments
        ],
        "totalDuration": request.total_duration_minutes,
        "totalPrice": request.total_price_cents,
        "clientName": client.name if client else "",
        "clientEmail": client.email if client else "",
        "clientPhone": client.phone if client else "",
        "notes": client.notes if client else "",
        "consentFormResponses": request.consent_responses,
    }


def _service_from_json(s: dict) -> Service:
    return Service(
        service_id=s["id"],
        category_id=s.get("categoryId", ""),
        name=s.get("name", ""),
        price_cents=int(s.get("price", 0)),
        duration_ms=int(s.get("duration", 0)),
        variation_id=s.get("variationId", ""),
        variations=[
            ServiceVariation(
                variation_id=v["id"],
                name=v.get("name", ""),
                price_cents=int(v.get("price", 0)),
                duration_ms=int(v.get("duration", 0)),
                version=int(v.get("version", 0)),
            )
            for v in s.get("variations", [])
        ],
        description=s.get("description", ""),
        is_active=bool(s.get("isActive", True)),
    )


class ProviderClient(SchedulingProvider):
    """Adapter: real HTTP client for the booking API."""

    def __init__(self, base_url: str, api_key: str = "", timeout: float = DEFAULT_TIMEOUT):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Cache-Control": "no-cache",
            }
        )
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self._base_url}/{path}"
        try:
            resp = self.session.request(method, url, timeout=self._timeout, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise ProviderError(f"{method} {path} failed: {exc}") from exc

    async def _call(self, method: str, path: str, **kwargs):
        """Run a blocking request off the event loop."""
        return await asyncio.to_thread(self._request, method, path, **kwargs)

    async def get_categories(self) -> list[Category]:
        data = await self._call("GET", "categories")
        return [
            Category(
                category_id=c["id"],
                name=c.get("name", ""),
                description=c.get("description", ""),
                is_active=bool(c.get("isActive", True)),
                service_count=int(c.get("serviceCount", len(c.get("services", [])))),
            )
            for c in data
        ]

    async def get_services(self, category_id: str) -> list[Service]:
        data = await self._call("GET", "services", params={"categoryId": category_id})
        return [_service_from_json(s) for s in data]

    async def get_staff(self, variation_id: str) -> list[StaffMember]:
        data = await self._call("GET", "staff", params={"serviceId": variation_id})
        return [
            StaffMember(staff_id=m["id"], name=m.get("name", ""), bio=m.get("bio", ""))
            for m in data
        ]

    async def get_addons(self, service_id: str) -> list[Addon]:
        data = await self._call("GET", "addons", params={"serviceId": service_id})
        return [
            Addon(
                addon_id=a["id"],
                name=a.get("name", ""),
                variation_id=a.get("variationId", a["id"]),
                version=int(a.get("version", 0)),
                duration_ms=int(a.get("duration", 0)),
                price_cents=int(a.get("price", 0)),
            )
            for a in data
        ]

    async def search_availability(
        self,
        staff_id: str,
        service_id: str,
        variation_id: str | None,
        addon_ids: list[str],
        start: date,
        end: date,
    ) -> dict[date, list[TimeSlot]]:
        params = {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "staffId": staff_id,
            "serviceId": service_id,
            **({"variationId": variation_id} if variation_id else {}),
            **_addons_param(addon_ids),
        }
        data = await self._call("GET", "availability", params=params)
        return {
            date.fromisoformat(day): [slot_from_json(s) for s in slots]
            for day, slots in data.get("slotsByDate", {}).items()
        }

    async def get_day_availability(
        self,
        staff_id: str,
        service_id: str,
        variation_id: str | None,
        addon_ids: list[str],
        day: date,
    ) -> DayAvailability:
        params = {
            "date": day.isoformat(),
            "staffId": staff_id,
            "serviceId": service_id,
            **({"variationId": variation_id} if variation_id else {}),
            **_addons_param(addon_ids),
        }
        data = await self._call("GET", "availability", params=params)
        return DayAvailability(
            slots=[slot_from_json(s) for s in data.get("slots", [])],
            is_fully_booked=bool(data.get("isFullyBooked", False)),
            staff_available=bool(data.get("staffAvailable", True)),
        )

    async def create_appointment(self, request: AppointmentRequest) -> str:
        body = {**appointment_payload(request), "idempotencyKey": str(uuid.uuid4())}
        data = await self._call("POST", "appointments", json=body)
        if not data.get("id"):
            raise ProviderError("POST appointments returned no appointment id")
        return data["id"]

    async def join_waitlist(self, request: WaitlistRequest) -> None:
        await self._call(
            "POST",
            "waitlist",
            json={
                "serviceId": request.service_id,
                "variationId": request.variation_id,
                "clientName": request.client.name,
                "clientEmail": request.client.email,
                "clientPhone": request.client.phone,
                "preferredDates": [d.isoformat() for d in request.preferred_dates],
                "preferredStaffIds": request.preferred_staff_ids,
            },
        )
