# backend/tests/test_portfolio.py
from __future__ import annotations

from datetime import date

import pytest

from app.config import settings
from app.domain.errors import ValidationError
from app.domain.portfolio import PortfolioRow, TrendPoint, growth, rollup
from app.services.portfolio import PortfolioAggregator
from app.services.reservation_reconciler import ReservationReconciler

from conftest import FakeReservations

SEPTEMBER = [
    {"id": 1, "guestName": "Ana", "arrivalDate": "2025-09-01", "departureDate": "2025-09-11", "totalPrice": 1000, "cleaningFee": 80, "cityTax": 20},
    {"id": 2, "guestName": "Rui", "arrivalDate": "2025-09-15", "departureDate": "2025-09-25", "totalPrice": 1000, "cityTax": 20},
]


class _Tax:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    async def get_tourist_tax(self, property_id, start, end):
        if self.fail:
            raise RuntimeError("tax endpoint down")
        return 55.5


def _aggregator(primary, store, tourist_tax=None):
    reconciler = ReservationReconciler(primary, settings=settings, today=lambda: date(2025, 10, 1))
    return PortfolioAggregator(reconciler, store, tourist_tax=tourist_tax, settings=settings)


@pytest.mark.asyncio
async def test_overview_occupancy_and_adr(store):
    agg = _aggregator(FakeReservations("primary", {"p1": SEPTEMBER}), store)
    ov = await agg.overview(["p1"], "2025-09")

    row = ov.properties[0]
    assert row.property_name == "Piece of Heaven"
    assert row.total_nights == 20
    assert abs(row.occupancy_rate - 66.7) < 1e-6
    assert abs(row.adr - 100.0) < 1e-6
    assert abs(row.total_revenue - 2000.0) < 1e-6
    # reservation city tax is summed when no tourist-tax provider is wired
    assert abs(row.tourist_tax - 40.0) < 1e-6
    assert row.booking_count == 2
    assert row.commission > 0


@pytest.mark.asyncio
async def test_overview_keeps_failing_property_as_error_row(store):
    primary = FakeReservations("primary", {"p1": SEPTEMBER}, failing=("p2",))
    ov = await _aggregator(primary, store).overview(["p1", "p2"], "2025-09")

    assert [r.property_id for r in ov.properties] == ["p1", "p2"]
    bad = ov.properties[1]
    assert bad.error == "Failed to fetch data"
    assert bad.property_name == "Lote 7 3-A"
    assert bad.total_revenue == 0.0

    assert ov.active_properties == 1
    assert abs(ov.totals.total_revenue - 2000.0) < 1e-6
    # averages only count healthy rows
    assert abs(ov.average_occupancy - 66.7) < 1e-6
    assert abs(ov.average_adr - 100.0) < 1e-6

    d = ov.to_dict()
    assert d["summary"]["total_properties"] == 2
    assert d["summary"]["active_properties"] == 1


@pytest.mark.asyncio
async def test_tourist_tax_provider_and_its_fallback(store):
    primary = FakeReservations("primary", {"p1": SEPTEMBER})

    ov = await _aggregator(primary, store, _Tax()).overview(["p1"], "2025-09")
    assert abs(ov.properties[0].tourist_tax - 55.5) < 1e-6

    ov = await _aggregator(primary, store, _Tax(fail=True)).overview(["p1"], "2025-09")
    assert abs(ov.properties[0].tourist_tax - 40.0) < 1e-6


@pytest.mark.asyncio
async def test_overview_rejects_bad_month(store):
    with pytest.raises(ValidationError):
        await _aggregator(FakeReservations("primary"), store).overview(["p1"], "September")


@pytest.mark.asyncio
async def test_trends_across_months(store):
    primary = FakeReservations("primary", {"p1": SEPTEMBER})
    tr = await _aggregator(primary, store).trends(["p1"], ["2025-08", "2025-09"])

    assert [p.month for p in tr.points] == ["2025-08", "2025-09"]
    assert tr.points[0].total_revenue == 0.0
    # no revenue in the first month: growth is reported as 0, not infinite
    assert tr.revenue_growth == 0.0
    assert abs(tr.occupancy_growth - 66.7) < 1e-6
    assert tr.to_dict()["summary"]["months_analyzed"] == 2


def test_rollup_with_no_rows():
    ov = rollup("2025-09", [])
    assert ov.average_occupancy == 0.0
    assert ov.totals.total_revenue == 0.0


def test_rollup_averages():
    rows = [
        PortfolioRow("p1", "A", "2025-09", occupancy_rate=50.0, adr=100.0, total_revenue=1500.0),
        PortfolioRow("p2", "B", "2025-09", occupancy_rate=70.0, adr=120.0, total_revenue=2100.0),
    ]
    ov = rollup("2025-09", rows)
    assert abs(ov.average_occupancy - 60.0) < 1e-6
    assert abs(ov.average_adr - 110.0) < 1e-6
    assert abs(ov.totals.total_revenue - 3600.0) < 1e-6


def test_growth():
    pts = [
        TrendPoint("2025-07", 1000.0, 3, 50.0, 100.0),
        TrendPoint("2025-08", 1200.0, 4, 55.0, 105.0),
        TrendPoint("2025-09", 1500.0, 5, 60.0, 110.0),
    ]
    tr = growth(pts, property_count=2)
    assert abs(tr.revenue_growth - 50.0) < 1e-6
    assert abs(tr.occupancy_growth - 10.0) < 1e-6

    single = growth(pts[:1], property_count=2)
    assert single.revenue_growth == 0.0 and single.occupancy_growth == 0.0
