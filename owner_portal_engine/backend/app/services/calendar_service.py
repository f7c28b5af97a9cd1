# backend/app/services/calendar_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError as DtoValidationError

from ..clients.base import CalendarMirror, CalendarProvider
from ..correlation import correlation_scope
from ..domain.errors import ValidationError, non_negative
from ..domain.periods import parse_day
from ..schemas import CalendarDayIn

log = logging.getLogger("owner_portal.calendar")

BLOCKED_STATUSES = frozenset({"unavailable", "blocked"})
UPDATE_STATUSES = ("blocked", "available")


@dataclass(frozen=True)
class CalendarDay:
    day: date
    status: str
    price: Optional[float] = None
    minimum_stay: Optional[int] = None
    reason: Optional[str] = None

    @property
    def blocked(self) -> bool:
        return self.status in BLOCKED_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "status": self.status,
            "price": self.price,
            "minimum_stay": self.minimum_stay,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class CalendarAvailability:
    property_id: str
    start: str
    end: str
    status: str
    days: list[CalendarDay] = field(default_factory=list)
    error: Optional[str] = None

    def blocked_ranges(self) -> list[tuple[date, date]]:
        """Consecutive blocked days folded into inclusive (first, last) ranges."""
        out: list[tuple[date, date]] = []
        for d in sorted((d.day for d in self.days if d.blocked)):
            if out and d - out[-1][1] == timedelta(days=1):
                out[-1] = (out[-1][0], d)
            else:
                out.append((d, d))
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "property_id": self.property_id,
            "start": self.start,
            "end": self.end,
            "status": self.status,
            "error": self.error,
            "days": [d.to_dict() for d in self.days],
            "blocked_ranges": [{"start": a.isoformat(), "end": b.isoformat()} for a, b in self.blocked_ranges()],
        }


@dataclass(frozen=True)
class CalendarUpdateResult:
    success: bool
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None
    response: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "warnings": list(self.warnings), "error": self.error, "response": self.response}


def to_calendar_days(rows: list[Any]) -> list[CalendarDay]:
    out: list[CalendarDay] = []
    for raw in rows or []:
        try:
            dto = raw if isinstance(raw, CalendarDayIn) else CalendarDayIn.model_validate(raw)
        except DtoValidationError:
            continue
        day = parse_day(dto.date)
        if day is None:
            continue
        out.append(
            CalendarDay(
                day=day,
                status=(dto.status or "available").strip().lower(),
                price=non_negative(dto.price) if dto.price is not None else None,
                minimum_stay=dto.minimum_stay,
                reason=dto.reason,
            )
        )
    return sorted(out, key=lambda d: d.day)


def _window(start: str, end: str) -> None:
    s, e = parse_day(start), parse_day(end)
    if s is None or e is None:
        raise ValidationError([f"dates must be YYYY-MM-DD, got {start!r}..{end!r}"])
    if e < s:
        raise ValidationError(["end must not be before start"])


class CalendarService:
    """Availability reads from the channel manager; writes go there first and are mirrored to the back-office."""

    def __init__(self, primary: CalendarProvider, mirror: Optional[CalendarMirror] = None) -> None:
        self.primary = primary
        self.mirror = mirror

    async def availability(self, property_id: str, start: str, end: str) -> CalendarAvailability:
        _window(start, end)
        pid = str(property_id)
        with correlation_scope():
            try:
                rows = await self.primary.get_calendar(pid, start, end)
            except Exception as e:
                log.warning("calendar unavailable", extra={"property_id": pid}, exc_info=e)
                return CalendarAvailability(pid, start, end, status="error", error=str(e) or type(e).__name__)
            return CalendarAvailability(pid, start, end, status="ok", days=to_calendar_days(rows))

    async def _write(self, pid: str, op: str, call: Callable[[], Awaitable[dict[str, Any]]]) -> CalendarUpdateResult:
        try:
            resp = await call()
        except Exception as e:
            log.warning("calendar %s failed", op, extra={"property_id": pid}, exc_info=e)
            return CalendarUpdateResult(success=False, error=str(e) or type(e).__name__)
        log.info("calendar %s applied", op, extra={"property_id": pid})
        return CalendarUpdateResult(success=True, response=resp)

    async def update(self, property_id: str, start: str, end: str, status: str) -> CalendarUpdateResult:
        _window(start, end)
        if status not in UPDATE_STATUSES:
            raise ValidationError([f"status must be one of {', '.join(UPDATE_STATUSES)}, got {status!r}"])
        pid = str(property_id)

        with correlation_scope():
            res = await self._write(pid, "update", lambda: self.primary.update_calendar(pid, start, end, status))
            if not res.success or self.mirror is None:
                return res

            try:
                await self.mirror.update_calendar(pid, start, end, status)
            except Exception as e:
                log.warning("calendar mirror failed", extra={"property_id": pid}, exc_info=e)
                return CalendarUpdateResult(
                    success=True,
                    warnings=["Back-office calendar not updated; availability may differ until resynced"],
                    response=res.response,
                )
            return res

    async def update_pricing(self, property_id: str, start: str, end: str, price: float) -> CalendarUpdateResult:
        _window(start, end)
        if non_negative(price) <= 0:
            raise ValidationError([f"price must be positive, got {price!r}"])
        pid = str(property_id)
        with correlation_scope():
            return await self._write(pid, "pricing", lambda: self.primary.update_pricing(pid, start, end, price))

    async def update_minimum_stay(self, property_id: str, start: str, end: str, minimum_stay: int) -> CalendarUpdateResult:
        _window(start, end)
        if int(minimum_stay) < 1:
            raise ValidationError([f"minimum_stay must be >= 1, got {minimum_stay!r}"])
        pid = str(property_id)
        with correlation_scope():
            return await self._write(
                pid, "minimum_stay", lambda: self.primary.update_minimum_stay(pid, start, end, int(minimum_stay))
            )

    async def update_maintenance(
        self, property_id: str, start: str, end: str, maintenance_type: str, description: Optional[str] = None
    ) -> CalendarUpdateResult:
        _window(start, end)
        pid = str(property_id)
        with correlation_scope():
            return await self._write(
                pid,
                "maintenance",
                lambda: self.primary.update_maintenance(pid, start, end, maintenance_type, description),
            )

    async def update_cleaning(
        self, property_id: str, start: str, end: str, cleaning_type: str, description: Optional[str] = None
    ) -> CalendarUpdateResult:
        _window(start, end)
        pid = str(property_id)
        with correlation_scope():
            return await self._write(
                pid,
                "cleaning",
                lambda: self.primary.update_cleaning(pid, start, end, cleaning_type, description),
            )
