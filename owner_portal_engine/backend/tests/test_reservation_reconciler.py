# backend/tests/test_reservation_reconciler.py
from __future__ import annotations

from datetime import date

import pytest

from app.config import settings
from app.domain.errors import ValidationError
from app.services.reservation_reconciler import ReservationReconciler

from conftest import FakeReservations, unix

ROWS = [
    {"id": 1, "guestName": "Ana Silva", "arrivalDate": "2025-07-10", "departureDate": "2025-07-15", "totalPrice": 500, "status": "confirmed"},
    {"id": 2, "guestName": "Rui Costa", "arrivalDate": "2025-06-25", "departureDate": "2025-07-02", "totalPrice": 700},
    {"id": 3, "guestName": "Long Stay", "arrivalDate": "2025-06-20", "departureDate": "2025-08-05", "totalPrice": 3000},
    {"id": 4, "guestName": "Later", "arrivalDate": "2025-08-10", "departureDate": "2025-08-12", "totalPrice": 200},
]


def _reconciler(primary, secondary=None):
    return ReservationReconciler(primary, secondary, settings=settings, today=lambda: date(2025, 8, 1))


@pytest.mark.asyncio
async def test_single_reservation_scenario():
    primary = FakeReservations("primary", {"p1": ROWS[:1]})
    rs = await _reconciler(primary).reconcile("p1", "2025-07-01", "2025-07-31")

    assert rs.status == "ok"
    assert rs.total == 1
    r = rs.reservations[0]
    assert r.nights == 5
    assert r.guest_email == settings.email_not_provided
    assert rs.summary.total_nights == 5
    assert abs(rs.summary.total_revenue - 500) < 1e-6


@pytest.mark.asyncio
async def test_window_filter_and_most_recent_first():
    primary = FakeReservations("primary", {"p1": ROWS})
    rs = await _reconciler(primary).reconcile("p1", "2025-07-01", "2025-07-31")

    # the stay spanning the whole month touches neither endpoint
    assert [r.id for r in rs.reservations] == ["1", "2"]


@pytest.mark.asyncio
async def test_full_range_sentinel_disables_filter():
    primary = FakeReservations("primary", {"p1": ROWS})
    rs = await _reconciler(primary).reconcile("p1", settings.full_range_start, settings.full_range_end)

    assert [r.id for r in rs.reservations] == ["4", "1", "2", "3"]
    assert primary.calls == [("p1", settings.full_range_start, settings.full_range_end)]


@pytest.mark.asyncio
async def test_upstream_failure_degrades_to_empty_result():
    primary = FakeReservations("primary", failing=("p1",))
    rs = await _reconciler(primary).reconcile("p1", "2025-07-01", "2025-07-31")

    assert rs.status == "error"
    assert rs.reservations == []
    assert rs.summary.count == 0
    assert "primary" in rs.error
    assert rs.to_dict()["bookings"] == []


@pytest.mark.asyncio
async def test_one_source_down_is_partial():
    primary = FakeReservations("primary", {"p1": ROWS[:1]})
    secondary = FakeReservations("secondary", failing=("*",))
    rs = await _reconciler(primary, secondary).reconcile("p1", "2025-07-01", "2025-07-31")

    assert rs.status == "partial"
    assert rs.total == 1
    assert "source_unavailable" in [w.code for w in rs.warnings]


@pytest.mark.asyncio
async def test_two_sources_are_deduplicated():
    primary = FakeReservations("primary", {"p1": ROWS[:1]})
    secondary = FakeReservations(
        "secondary",
        {
            "p1": [
                {"rcode": "HK-1", "firstname": "Ana", "lastname": "Silva", "in_date": unix(2025, 7, 10), "out_date": unix(2025, 7, 15)},
                {"rcode": "HK-2", "firstname": "Marta", "in_date": unix(2025, 7, 20), "out_date": unix(2025, 7, 23), "received_amount": 330},
            ]
        },
    )
    rs = await _reconciler(primary, secondary).reconcile("p1", "2025-07-01", "2025-07-31")

    assert rs.status == "ok"
    assert [(r.id, r.source) for r in rs.reservations] == [("HK-2", "secondary"), ("1", "primary")]


@pytest.mark.asyncio
async def test_malformed_rows_become_warnings():
    primary = FakeReservations("primary", {"p1": [ROWS[0], {"id": 9, "totalPrice": "lots"}]})
    rs = await _reconciler(primary).reconcile("p1", "2025-07-01", "2025-07-31")

    assert rs.total == 1
    assert "malformed_record" in [w.code for w in rs.warnings]


@pytest.mark.asyncio
async def test_bad_window_is_rejected():
    primary = FakeReservations("primary")
    with pytest.raises(ValidationError):
        await _reconciler(primary).reconcile("p1", "2025-07-31", "2025-07-01")
    with pytest.raises(ValidationError):
        await _reconciler(primary).reconcile("p1", "July", "2025-07-31")
    assert primary.calls == []
