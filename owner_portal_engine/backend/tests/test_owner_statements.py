# backend/tests/test_owner_statements.py
from __future__ import annotations

from datetime import date

import pytest

from app.config import settings
from app.domain.errors import ValidationError
from app.domain.reservations import Reservation
from app.domain.statements import compute_statement, normalize_commission_rate
from app.services.owner_statements import owner_statement
from app.services.record_store import PROPERTIES

from conftest import FakeReservations, unix


def _res(received: float, host_commission: float = 0.0, cleaning: float = 0.0, rid: str = "r1") -> Reservation:
    return Reservation(
        id=rid,
        property_id="p1",
        source="secondary",
        guest_name="Guest",
        guest_email="x",
        guest_phone=None,
        channel="Direct",
        arrival=date(2025, 7, 10),
        departure=date(2025, 7, 15),
        nights=5,
        adults=2,
        children=0,
        total_price=received,
        cleaning_fee=cleaning,
        city_tax=0.0,
        status="Confirmed",
        payment_status="Paid",
        host_commission=host_commission,
    )


def test_owner_property_statement():
    s = compute_statement([_res(1000, 100, 80)], 0.25, False)

    assert abs(s.management_commission - 255.00) < 1e-6
    assert abs(s.total_cleaning_fees_invoiced - 98.40) < 1e-6
    assert abs(s.total_to_invoice - 353.40) < 1e-6
    assert abs(s.total_to_pay - 646.60) < 1e-6
    assert s.lines[0].commissionable_amount == 1020.0


def test_admin_owned_property_pays_no_commission_or_vat():
    s = compute_statement([_res(1000, 100, 80)], 0.25, True)

    assert s.management_commission == 0.0
    assert abs(s.total_cleaning_fees_invoiced - 80.0) < 1e-6
    assert abs(s.total_to_invoice - 80.0) < 1e-6
    assert abs(s.total_to_pay - 920.0) < 1e-6


def test_statement_reconciles_to_the_cent():
    rows = [
        _res(333.33, 0, 33.33, "a"),
        _res(123.45, 10, 0, "b"),
        _res(87.65, 4.35, 19.99, "c"),
    ]
    for admin in (False, True):
        s = compute_statement(rows, 0.2, admin)
        assert abs(s.total_to_pay + s.total_to_invoice - s.total_received_amount) < 0.005


def test_commissionable_amount_never_negative():
    s = compute_statement([_res(50, 0, 80)], 0.25, False)
    assert s.management_commission == 0.0
    assert s.lines[0].commissionable_amount == 0.0


def test_commission_rate_forms():
    assert normalize_commission_rate(25) == 0.25
    assert normalize_commission_rate(0.25) == 0.25
    assert normalize_commission_rate("20") == 0.2
    assert normalize_commission_rate(None) == 0.25
    assert normalize_commission_rate(None, 0.3) == 0.3
    assert normalize_commission_rate(1) == 1.0
    assert abs(normalize_commission_rate(1.5) - 0.015) < 1e-12
    assert normalize_commission_rate(100) == 1.0
    assert normalize_commission_rate(250) == 1.0


def test_negative_commission_rate_clamps_to_zero():
    assert normalize_commission_rate(-0.1) == 0.0
    assert normalize_commission_rate(-3) == 0.0
    s = compute_statement([_res(1000, 0, 0)], -0.1, False)
    assert s.management_commission == 0.0
    assert s.total_to_pay == 1000.0


def test_non_numeric_commission_rate_is_rejected():
    for bad in ("abc", float("nan"), float("inf"), []):
        with pytest.raises(ValidationError):
            normalize_commission_rate(bad)


def test_empty_statement():
    s = compute_statement([], 0.25, False)
    assert s.reservation_count == 0
    assert s.total_to_pay == 0.0


BACKOFFICE_ROWS = [
    {"rcode": "A", "firstname": "Ana", "in_date": unix(2025, 7, 10), "out_date": unix(2025, 7, 15),
     "received_amount": 1000, "host_commission": 100, "cleaning_fee": 80},
    {"rcode": "B", "firstname": "Rui", "in_date": unix(2025, 6, 28), "out_date": unix(2025, 7, 3),
     "received_amount": 400},
]


@pytest.mark.asyncio
async def test_owner_statement_uses_property_terms(store):
    backoffice = FakeReservations("secondary", {"p1": BACKOFFICE_ROWS, "p2": BACKOFFICE_ROWS})

    res = await owner_statement(backoffice, store, "p1", "2025-07-01", "2025-07-31", settings=settings)
    assert res.status == "ok"
    assert res.property_name == "Piece of Heaven"
    # only arrivals inside the window are billed
    assert [ln.reservation_id for ln in res.statement.lines] == ["A"]
    assert abs(res.statement.total_to_pay - 646.60) < 1e-6

    admin = await owner_statement(backoffice, store, "p2", "2025-07-01", "2025-07-31", settings=settings)
    assert admin.statement.is_admin_owned is True
    assert abs(admin.statement.total_to_pay - 920.0) < 1e-6


@pytest.mark.asyncio
async def test_owner_statement_rate_override(store):
    backoffice = FakeReservations("secondary", {"p1": BACKOFFICE_ROWS[:1]})
    res = await owner_statement(backoffice, store, "p1", "2025-07-01", "2025-07-31", 20, settings=settings)
    assert res.statement.commission_rate == 0.2
    assert abs(res.statement.management_commission - 204.0) < 1e-6


@pytest.mark.asyncio
async def test_owner_statement_degrades_on_upstream_failure(store):
    backoffice = FakeReservations("secondary", failing=("p1",))
    res = await owner_statement(backoffice, store, "p1", "2025-07-01", "2025-07-31", settings=settings)
    assert res.status == "error"
    assert res.statement.reservation_count == 0
    assert res.error


@pytest.mark.asyncio
async def test_owner_statement_rejects_bad_window(store):
    with pytest.raises(ValidationError):
        await owner_statement(FakeReservations("secondary"), store, "p1", "2025-07-31", "2025-07-01", settings=settings)


@pytest.mark.asyncio
async def test_owner_statement_rate_guards(store):
    backoffice = FakeReservations("secondary", {"p1": BACKOFFICE_ROWS[:1], "p4": BACKOFFICE_ROWS[:1]})

    res = await owner_statement(backoffice, store, "p1", "2025-07-01", "2025-07-31", -0.1, settings=settings)
    assert res.statement.commission_rate == 0.0
    assert res.statement.management_commission == 0.0

    await store.put(PROPERTIES, "p4", {"id": "p4", "name": "Broken terms", "commission_rate": "n/a"})
    with pytest.raises(ValidationError):
        await owner_statement(backoffice, store, "p4", "2025-07-01", "2025-07-31", settings=settings)
    assert backoffice.calls == [("p1", "2025-07-01", "2025-07-31")]
