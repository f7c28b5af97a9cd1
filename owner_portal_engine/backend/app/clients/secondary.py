# backend/app/clients/secondary.py
from __future__ import annotations

import logging
from datetime import datetime, time, timezone
from typing import Any, Optional

import httpx

from ..config import settings
from ..domain.errors import UpstreamUnavailable
from ..domain.field_resolution import LAST_SUBMISSION_DATE, resolve
from ..domain.periods import parse_required_day
from ..schemas import ComplianceReply

log = logging.getLogger("owner_portal.clients")


def to_unix(day: str) -> int:
    """YYYY-MM-DD -> unix seconds at 00:00 UTC (the back-office filters on epoch seconds)."""
    d = parse_required_day(day, "date")
    return int(datetime.combine(d, time.min, tzinfo=timezone.utc).timestamp())


class SecondaryClient:
    """
    Property back-office API: reservations with payout breakdown, guest-registration
    (compliance) submissions, tourist tax. Every call authenticates with an APIKEY query param.
    """

    name = "secondary"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        account_id: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base = (base_url or settings.secondary_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.secondary_api_key
        self.account_id = account_id if account_id is not None else settings.secondary_account_id
        self.timeout = float(timeout if timeout is not None else settings.upstream_timeout_seconds)
        self.transport = transport

    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, *, operation: str, params: dict[str, Any]) -> Any:
        if not self.api_key:
            raise UpstreamUnavailable(self.name, operation, "secondary_api_key not set")

        q = {"APIKEY": self.api_key, **{k: v for k, v in params.items() if v is not None}}
        try:
            async with httpx.AsyncClient(
                base_url=self.base, timeout=self.timeout, transport=self.transport
            ) as client:
                r = await client.get(path, params=q)
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(self.name, operation, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable(self.name, operation, str(e) or type(e).__name__) from e

    def _window(self, property_id: str, start: str, end: str) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "property_id": property_id,
            "date_start": to_unix(start),
            "date_end": to_unix(end),
        }

    # -------------------- Reservations --------------------

    async def get_reservations(self, property_id: str, start: str, end: str) -> list[dict[str, Any]]:
        data = await self._get(
            "/getReservations", operation="get_reservations", params=self._window(property_id, start, end)
        )
        if not isinstance(data, list):
            return []
        return [r for r in data if isinstance(r, dict)]

    # -------------------- Compliance submissions --------------------

    async def validate_submission(self, property_id: str, reservation_code: str) -> ComplianceReply:
        data = await self._get(
            "/validateSIBA", operation="validate_submission", params={"rcode": reservation_code}
        )
        return ComplianceReply.model_validate(data if isinstance(data, dict) else {})

    async def send_submission(self, property_id: str, reservation_code: str) -> ComplianceReply:
        data = await self._get("/sendSIBA", operation="send_submission", params={"rcode": reservation_code})
        reply = ComplianceReply.model_validate(data if isinstance(data, dict) else {})
        log.info(
            "compliance submission sent upstream",
            extra={"property_id": property_id, "reservation_code": reservation_code, "provider": self.name},
        )
        return reply

    async def get_last_submission_date(self, property_id: str) -> Optional[str]:
        data = await self._get(
            "/getLastSIBADate", operation="get_last_submission_date", params={"property_id": property_id}
        )
        if not isinstance(data, dict):
            return None
        v = resolve(data, LAST_SUBMISSION_DATE)
        return str(v) if v is not None else None

    # -------------------- Tourist tax / calendar --------------------

    async def get_tourist_tax(self, property_id: str, start: str, end: str) -> float:
        data = await self._get(
            "/getTouristTax", operation="get_tourist_tax", params=self._window(property_id, start, end)
        )
        if not isinstance(data, dict):
            return 0.0
        try:
            return max(0.0, float(data.get("totalTax") or 0.0))
        except (TypeError, ValueError):
            return 0.0

    async def update_calendar(self, property_id: str, start: str, end: str, status: str) -> dict[str, Any]:
        data = await self._get(
            "/updateCalendar",
            operation="update_calendar",
            params={
                "listing_id": property_id,
                "date_start": to_unix(start),
                "date_end": to_unix(end),
                "status": status,
            },
        )
        return data if isinstance(data, dict) else {"result": data}
