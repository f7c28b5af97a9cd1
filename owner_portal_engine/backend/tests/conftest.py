# backend/tests/conftest.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest

from app.domain.errors import UpstreamUnavailable
from app.schemas import ComplianceReply
from app.services.record_store import PROPERTIES, InMemoryRecordStore

TODAY = date(2025, 8, 1)


def unix(y: int, m: int, d: int) -> int:
    return int(datetime(y, m, d, tzinfo=timezone.utc).timestamp())


class FakeReservations:
    """Reservation source keyed by property id. Properties in `failing` raise UpstreamUnavailable."""

    def __init__(self, name: str, rows: Optional[dict[str, list[dict]]] = None, failing: tuple = ()) -> None:
        self.name = name
        self.rows = rows or {}
        self.failing = set(failing)
        self.calls: list[tuple[str, str, str]] = []

    async def get_reservations(self, property_id: str, start: str, end: str) -> list[dict]:
        self.calls.append((property_id, start, end))
        if property_id in self.failing or "*" in self.failing:
            raise UpstreamUnavailable(self.name, "get_reservations", "connection refused")
        return list(self.rows.get(property_id, []))


class FakeCompliance(FakeReservations):
    def __init__(
        self,
        rows: Optional[dict[str, list[dict]]] = None,
        *,
        last_dates: Optional[dict[str, str]] = None,
        validate_reply: Optional[dict[str, Any]] = None,
        send_reply: Optional[dict[str, Any]] = None,
        failing: tuple = (),
        fail_validate: bool = False,
        fail_send: bool = False,
        fail_last: tuple = (),
    ) -> None:
        super().__init__("secondary", rows, failing)
        self.last_dates = last_dates or {}
        self.validate_reply = validate_reply if validate_reply is not None else {"status": "success"}
        self.send_reply = send_reply if send_reply is not None else {"status": "success", "submissionId": "S-1"}
        self.fail_validate = fail_validate
        self.fail_send = fail_send
        self.fail_last = set(fail_last)
        self.sent: list[str] = []

    async def validate_submission(self, property_id: str, reservation_code: str) -> ComplianceReply:
        if self.fail_validate:
            raise UpstreamUnavailable(self.name, "validate_submission", "timeout")
        return ComplianceReply.model_validate(self.validate_reply)

    async def send_submission(self, property_id: str, reservation_code: str) -> ComplianceReply:
        if self.fail_send:
            raise UpstreamUnavailable(self.name, "send_submission", "timeout")
        self.sent.append(reservation_code)
        return ComplianceReply.model_validate(self.send_reply)

    async def get_last_submission_date(self, property_id: str) -> Optional[str]:
        if property_id in self.fail_last:
            raise UpstreamUnavailable(self.name, "get_last_submission_date", "HTTP 502")
        return self.last_dates.get(property_id)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(
        {
            PROPERTIES: {
                "p1": {"id": "p1", "name": "Piece of Heaven", "is_admin_owned": False, "commission_rate": 0.25},
                "p2": {"id": "p2", "name": "Lote 7 3-A", "is_admin_owned": True},
                "p3": {"id": "p3", "name": "Waterfront Penthouse"},
            }
        }
    )
