# backend/app/services/portfolio.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from ..clients.base import TouristTaxProvider
from ..config import Settings, settings as default_settings
from ..correlation import correlation_scope
from ..domain.errors import UpstreamUnavailable, ValidationError
from ..domain.outcomes import settle_all
from ..domain.periods import month_bounds
from ..domain.portfolio import (
    PortfolioOverview,
    PortfolioRow,
    Trends,
    build_row,
    error_row,
    growth,
    rollup,
    trend_point,
)
from ..domain.statements import compute_statement
from .owner_statements import property_terms
from .record_store import RecordStore, property_entry
from .reservation_reconciler import STATUS_ERROR, ReservationReconciler

log = logging.getLogger("owner_portal.portfolio")


def _bounds(month: str) -> tuple[str, str]:
    try:
        start, end = month_bounds(month)
    except (ValueError, IndexError) as e:
        raise ValidationError([f"month: expected YYYY-MM, got {month!r}"]) from e
    return start.isoformat(), end.isoformat()


class PortfolioAggregator:
    def __init__(
        self,
        reconciler: ReservationReconciler,
        store: RecordStore,
        *,
        tourist_tax: Optional[TouristTaxProvider] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.reconciler = reconciler
        self.store = store
        self.tourist_tax = tourist_tax
        self.settings = settings or default_settings

    async def _tax(self, pid: str, start: str, end: str) -> Optional[float]:
        if self.tourist_tax is None:
            return None
        try:
            return await self.tourist_tax.get_tourist_tax(pid, start, end)
        except Exception as e:
            # reservation city_tax is summed instead
            log.warning("tourist tax unavailable", extra={"property_id": pid}, exc_info=e)
            return None

    async def _row(self, pid: str, month: str) -> PortfolioRow:
        start, end = _bounds(month)
        name, admin_owned, rate = await property_terms(self.store, pid, self.settings)

        rs = await self.reconciler.reconcile(pid, start, end)
        if rs.status == STATUS_ERROR:
            raise UpstreamUnavailable("reservations", "reconcile", rs.error or "")

        statement = compute_statement(
            rs.reservations, rate, admin_owned, vat_rate=self.settings.cleaning_fee_vat_rate
        )
        return build_row(
            property_id=pid,
            property_name=name or f"Property {pid}",
            month=month,
            reservations=rs.reservations,
            statement=statement,
            tourist_tax=await self._tax(pid, start, end),
        )

    async def overview(self, property_ids: Sequence[str], month: str) -> PortfolioOverview:
        _bounds(month)
        ids = [str(p) for p in property_ids]

        with correlation_scope():
            outcomes = await settle_all(ids, lambda pid: self._row(pid, month))

            rows: list[PortfolioRow] = []
            for pid, outcome in zip(ids, outcomes):
                if outcome.ok:
                    rows.append(outcome.value)
                    continue
                log.warning(
                    "portfolio row failed", extra={"property_id": pid, "month": month}, exc_info=outcome.error
                )
                entry = await property_entry(self.store, pid) or {}
                rows.append(error_row(pid, entry.get("name") or f"Property {pid}", month, "Failed to fetch data"))

            ov = rollup(month, rows)
            log.info(
                "portfolio overview: %d/%d properties healthy",
                ov.active_properties,
                len(rows),
                extra={"month": month},
            )
            return ov

    async def trends(self, property_ids: Sequence[str], months: Sequence[str]) -> Trends:
        months = list(months)
        for m in months:
            _bounds(m)

        with correlation_scope():
            overviews = await asyncio.gather(*(self.overview(property_ids, m) for m in months))
            return growth([trend_point(ov) for ov in overviews], property_count=len(property_ids))
