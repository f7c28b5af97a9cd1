# backend/app/domain/portfolio.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Sequence

from .errors import pct, safe_div
from .periods import days_in_month
from .reservations import Reservation
from .statements import Statement


@dataclass(frozen=True)
class PortfolioRow:
    property_id: str
    property_name: str
    month: str
    occupancy_rate: float = 0.0
    adr: float = 0.0
    total_revenue: float = 0.0
    net_payout: float = 0.0
    booking_count: int = 0
    total_nights: int = 0
    tourist_tax: float = 0.0
    commission: float = 0.0
    cleaning_fees: float = 0.0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PortfolioTotals:
    total_revenue: float = 0.0
    total_net_payout: float = 0.0
    total_bookings: int = 0
    total_tourist_tax: float = 0.0
    total_commission: float = 0.0
    total_cleaning_fees: float = 0.0


@dataclass(frozen=True)
class PortfolioOverview:
    month: str
    properties: list[PortfolioRow] = field(default_factory=list)
    totals: PortfolioTotals = field(default_factory=PortfolioTotals)
    average_occupancy: float = 0.0
    average_adr: float = 0.0

    @property
    def active_properties(self) -> int:
        return sum(1 for r in self.properties if r.ok)

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "properties": [r.to_dict() for r in self.properties],
            "portfolio_totals": asdict(self.totals),
            "portfolio_averages": {
                "average_occupancy": self.average_occupancy,
                "average_adr": self.average_adr,
            },
            "summary": {
                "total_properties": len(self.properties),
                "active_properties": self.active_properties,
                "total_revenue": self.totals.total_revenue,
                "total_net_payout": self.totals.total_net_payout,
                "average_occupancy": self.average_occupancy,
                "average_adr": self.average_adr,
            },
        }


@dataclass(frozen=True)
class TrendPoint:
    month: str
    total_revenue: float
    total_bookings: int
    average_occupancy: float
    average_adr: float


@dataclass(frozen=True)
class Trends:
    points: list[TrendPoint]
    property_count: int
    revenue_growth: float = 0.0
    occupancy_growth: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "trends": [asdict(p) for p in self.points],
            "summary": {
                "months_analyzed": len(self.points),
                "total_properties": self.property_count,
                "revenue_growth": self.revenue_growth,
                "occupancy_growth": self.occupancy_growth,
            },
        }


def build_row(
    *,
    property_id: str,
    property_name: str,
    month: str,
    reservations: Sequence[Reservation],
    statement: Statement,
    tourist_tax: Optional[float] = None,
) -> PortfolioRow:
    """
    occupancy = nights / days in month * 100 (1 decimal). Nights are not clipped to the month.
    adr       = revenue / nights (2 decimals, 0 when no nights)
    """
    nights = sum(int(r.nights) for r in reservations)
    revenue = float(sum(r.total_price for r in reservations))
    tax = float(tourist_tax) if tourist_tax is not None else float(sum(r.city_tax for r in reservations))

    return PortfolioRow(
        property_id=str(property_id),
        property_name=property_name,
        month=month,
        occupancy_rate=round(pct(nights, days_in_month(month)), 1),
        adr=round(safe_div(revenue, nights), 2),
        total_revenue=round(revenue, 2),
        net_payout=round(statement.total_to_pay, 2),
        booking_count=len(reservations),
        total_nights=nights,
        tourist_tax=round(tax, 2),
        commission=round(statement.management_commission, 2),
        cleaning_fees=round(statement.total_cleaning_fees, 2),
    )


def error_row(property_id: str, property_name: str, month: str, message: str) -> PortfolioRow:
    return PortfolioRow(
        property_id=str(property_id),
        property_name=property_name,
        month=month,
        error=message or "Failed to fetch data",
    )


def rollup(month: str, rows: Sequence[PortfolioRow]) -> PortfolioOverview:
    """Totals include every row (error rows are zero); averages use healthy rows only."""
    rows = list(rows)
    totals = PortfolioTotals(
        total_revenue=round(sum(r.total_revenue for r in rows), 2),
        total_net_payout=round(sum(r.net_payout for r in rows), 2),
        total_bookings=sum(r.booking_count for r in rows),
        total_tourist_tax=round(sum(r.tourist_tax for r in rows), 2),
        total_commission=round(sum(r.commission for r in rows), 2),
        total_cleaning_fees=round(sum(r.cleaning_fees for r in rows), 2),
    )

    valid = [r for r in rows if r.ok]
    avg_occ = safe_div(sum(r.occupancy_rate for r in valid), len(valid))
    avg_adr = safe_div(sum(r.adr for r in valid), len(valid))

    return PortfolioOverview(
        month=month,
        properties=rows,
        totals=totals,
        average_occupancy=round(avg_occ, 1),
        average_adr=round(avg_adr, 2),
    )


def trend_point(overview: PortfolioOverview) -> TrendPoint:
    return TrendPoint(
        month=overview.month,
        total_revenue=overview.totals.total_revenue,
        total_bookings=overview.totals.total_bookings,
        average_occupancy=overview.average_occupancy,
        average_adr=overview.average_adr,
    )


def growth(points: Sequence[TrendPoint], property_count: int) -> Trends:
    """
    revenue_growth: percent change first -> last month (0 when first month earned nothing)
    occupancy_growth: percentage-point delta first -> last month
    """
    points = list(points)
    if len(points) < 2:
        return Trends(points=points, property_count=property_count)

    first, last = points[0], points[-1]
    return Trends(
        points=points,
        property_count=property_count,
        revenue_growth=round(pct(last.total_revenue - first.total_revenue, first.total_revenue), 2),
        occupancy_growth=round(last.average_occupancy - first.average_occupancy, 1),
    )
