# backend/app/clients/base.py
from __future__ import annotations

from typing import Any, Optional, Protocol

from ..schemas import ComplianceReply

RawRecord = dict[str, Any]


class ReservationProvider(Protocol):
    name: str

    async def get_reservations(self, property_id: str, start: str, end: str) -> list[RawRecord]:
        ...


class CalendarMirror(Protocol):
    async def update_calendar(self, property_id: str, start: str, end: str, status: str) -> RawRecord:
        ...


class CalendarProvider(CalendarMirror, Protocol):
    name: str

    async def get_calendar(self, property_id: str, start: str, end: str) -> list[RawRecord]:
        ...

    async def update_pricing(self, property_id: str, start: str, end: str, price: float) -> RawRecord:
        ...

    async def update_minimum_stay(self, property_id: str, start: str, end: str, minimum_stay: int) -> RawRecord:
        ...

    async def update_maintenance(
        self, property_id: str, start: str, end: str, maintenance_type: str, description: Optional[str] = None
    ) -> RawRecord:
        ...

    async def update_cleaning(
        self, property_id: str, start: str, end: str, cleaning_type: str, description: Optional[str] = None
    ) -> RawRecord:
        ...


class ComplianceProvider(Protocol):
    name: str

    async def get_reservations(self, property_id: str, start: str, end: str) -> list[RawRecord]:
        ...

    async def validate_submission(self, property_id: str, reservation_code: str) -> ComplianceReply:
        ...

    async def send_submission(self, property_id: str, reservation_code: str) -> ComplianceReply:
        ...

    async def get_last_submission_date(self, property_id: str) -> Optional[str]:
        ...


class TouristTaxProvider(Protocol):
    async def get_tourist_tax(self, property_id: str, start: str, end: str) -> float:
        ...
