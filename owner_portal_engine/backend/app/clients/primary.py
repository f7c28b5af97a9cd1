# backend/app/clients/primary.py
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..config import settings
from ..domain.errors import UpstreamUnavailable

log = logging.getLogger("owner_portal.clients")


def _rows(data: Any) -> list[dict[str, Any]]:
    # list endpoints answer {"status": "success", "result": [...]}
    if isinstance(data, dict):
        data = data.get("result", [])
    if not isinstance(data, list):
        return []
    return [r for r in data if isinstance(r, dict)]


class PrimaryClient:
    """Channel manager API: reservations, calendar, pricing and stay rules."""

    name = "primary"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base = (base_url or settings.primary_base_url).rstrip("/")
        self.token = token if token is not None else settings.primary_token
        self.timeout = float(timeout if timeout is not None else settings.upstream_timeout_seconds)
        self.transport = transport

    def enabled(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        if not self.token:
            raise UpstreamUnavailable(self.name, operation, "primary_token not set")

        try:
            async with httpx.AsyncClient(
                base_url=self.base, timeout=self.timeout, transport=self.transport
            ) as client:
                r = await client.request(method, path, params=params, json=json, headers=self._headers())
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(self.name, operation, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable(self.name, operation, str(e) or type(e).__name__) from e

    # -------------------- Reservations --------------------

    async def get_reservations(self, property_id: str, start: str, end: str) -> list[dict[str, Any]]:
        data = await self._request(
            "GET",
            "/reservations",
            operation="get_reservations",
            params={"listingId": property_id, "dateStart": start, "dateEnd": end},
        )
        rows = _rows(data)
        log.debug("primary reservations fetched", extra={"property_id": property_id, "provider": self.name})
        return rows

    # -------------------- Calendar --------------------

    async def get_calendar(self, property_id: str, start: str, end: str) -> list[dict[str, Any]]:
        data = await self._request(
            "GET",
            f"/listings/{property_id}/calendar",
            operation="get_calendar",
            params={"startDate": start, "endDate": end},
        )
        return _rows(data)

    async def _put_calendar(self, property_id: str, payload: dict[str, Any], *, operation: str) -> dict[str, Any]:
        data = await self._request("PUT", f"/listings/{property_id}/calendar", operation=operation, json=payload)
        return data if isinstance(data, dict) else {"result": data}

    async def update_calendar(self, property_id: str, start: str, end: str, status: str) -> dict[str, Any]:
        blocked = status == "blocked"
        payload = {
            "startDate": start,
            "endDate": end,
            "status": "unavailable" if blocked else "available",
            "reason": "Owner blocked" if blocked else "Available for booking",
        }
        return await self._put_calendar(property_id, payload, operation="update_calendar")

    async def update_pricing(self, property_id: str, start: str, end: str, price: float) -> dict[str, Any]:
        payload = {"startDate": start, "endDate": end, "price": float(price)}
        return await self._put_calendar(property_id, payload, operation="update_pricing")

    async def update_minimum_stay(self, property_id: str, start: str, end: str, minimum_stay: int) -> dict[str, Any]:
        payload = {"startDate": start, "endDate": end, "minimumStay": int(minimum_stay)}
        return await self._put_calendar(property_id, payload, operation="update_minimum_stay")

    async def update_maintenance(
        self, property_id: str, start: str, end: str, maintenance_type: str, description: Optional[str] = None
    ) -> dict[str, Any]:
        payload = {
            "startDate": start,
            "endDate": end,
            "status": "unavailable",
            "reason": f"Maintenance: {maintenance_type}",
            "description": description or f"Scheduled maintenance: {maintenance_type}",
            "maintenanceType": maintenance_type,
        }
        return await self._put_calendar(property_id, payload, operation="update_maintenance")

    async def update_cleaning(
        self, property_id: str, start: str, end: str, cleaning_type: str, description: Optional[str] = None
    ) -> dict[str, Any]:
        payload = {
            "startDate": start,
            "endDate": end,
            "status": "unavailable",
            "reason": f"Cleaning: {cleaning_type}",
            "description": description or f"Scheduled cleaning: {cleaning_type}",
            "cleaningType": cleaning_type,
        }
        return await self._put_calendar(property_id, payload, operation="update_cleaning")
