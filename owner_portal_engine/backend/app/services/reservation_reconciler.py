# backend/app/services/reservation_reconciler.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional

from pydantic import ValidationError as DtoValidationError

from ..clients.base import ReservationProvider
from ..config import Settings, settings as default_settings
from ..correlation import correlation_scope
from ..domain.errors import ReconciliationWarning, ValidationError
from ..domain.outcomes import settle_all
from ..domain.periods import parse_day, utc_today
from ..domain.reservations import (
    SOURCE_PRIMARY,
    SOURCE_SECONDARY,
    DataQualityReport,
    Reservation,
    ReservationSummary,
    data_quality,
    from_primary,
    from_secondary,
    merge_sources,
    sort_most_recent_first,
    summarize,
    touches_window,
)
from ..schemas import PrimaryReservationIn, SecondaryReservationIn

log = logging.getLogger("owner_portal.reservations")

STATUS_OK = "ok"
STATUS_PARTIAL = "partial"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class ReservationSet:
    property_id: str
    start: str
    end: str
    status: str
    reservations: list[Reservation] = field(default_factory=list)
    summary: ReservationSummary = field(default_factory=ReservationSummary)
    data_quality: DataQualityReport = field(default_factory=DataQualityReport)
    warnings: list[ReconciliationWarning] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.reservations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "property_id": self.property_id,
            "start": self.start,
            "end": self.end,
            "status": self.status,
            "error": self.error,
            "total": self.total,
            "bookings": [r.to_dict() for r in self.reservations],
            "summary": self.summary.to_dict(),
            "data_quality": self.data_quality.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }


def convert_rows(
    rows: list[Any],
    *,
    source: str,
    property_id: str,
    cfg: Settings,
    warnings: list[ReconciliationWarning],
) -> list[Reservation]:
    """Raw upstream rows -> canonical reservations. Malformed rows become warnings, never errors."""
    model = PrimaryReservationIn if source == SOURCE_PRIMARY else SecondaryReservationIn
    convert = from_primary if source == SOURCE_PRIMARY else from_secondary

    out: list[Reservation] = []
    for raw in rows or []:
        if isinstance(raw, model):
            dto = raw
        else:
            try:
                dto = model.model_validate(raw)
            except DtoValidationError as e:
                rid = str(raw.get("id") or raw.get("rcode") or "") if isinstance(raw, dict) else None
                warnings.append(
                    ReconciliationWarning("malformed_record", f"{source} record skipped: {e.error_count()} bad fields", rid)
                )
                continue

        r = convert(
            dto,
            property_id=property_id,
            email_sentinel=cfg.email_not_provided,
            default_currency=cfg.default_currency,
            warnings=warnings,
        )
        if r is not None:
            out.append(r)
    return out


class ReservationReconciler:
    """
    Fetches a property's reservations from the Primary provider (plus the Secondary one when given),
    converts them to canonical reservations and filters them client-side.
    """

    def __init__(
        self,
        primary: ReservationProvider,
        secondary: Optional[ReservationProvider] = None,
        *,
        settings: Optional[Settings] = None,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.settings = settings or default_settings
        self.today = today

    def is_full_range(self, start: str, end: str) -> bool:
        return start == self.settings.full_range_start and end == self.settings.full_range_end

    def _sources(self) -> list[tuple[str, ReservationProvider]]:
        out = [(SOURCE_PRIMARY, self.primary)]
        if self.secondary is not None:
            out.append((SOURCE_SECONDARY, self.secondary))
        return out

    async def collect(
        self, property_id: str, start: str, end: str
    ) -> tuple[list[Reservation], list[ReconciliationWarning], str, Optional[str]]:
        """Unfiltered, merged reservations plus (warnings, status, error)."""
        sources = self._sources()
        outcomes = await settle_all(
            sources, lambda s: s[1].get_reservations(str(property_id), start, end)
        )

        warnings: list[ReconciliationWarning] = []
        by_source: dict[str, list[Reservation]] = {SOURCE_PRIMARY: [], SOURCE_SECONDARY: []}
        failures: list[str] = []

        for (source, _provider), outcome in zip(sources, outcomes):
            if not outcome.ok:
                failures.append(f"{source}: {outcome.message}")
                warnings.append(ReconciliationWarning("source_unavailable", f"{source} reservations unavailable"))
                log.warning(
                    "reservation source failed",
                    extra={"property_id": property_id, "provider": source},
                    exc_info=outcome.error,
                )
                continue
            by_source[source] = convert_rows(
                outcome.value, source=source, property_id=str(property_id), cfg=self.settings, warnings=warnings
            )

        if len(failures) == len(sources):
            return [], warnings, STATUS_ERROR, "; ".join(failures)

        merged = merge_sources(by_source[SOURCE_PRIMARY], by_source[SOURCE_SECONDARY])
        status = STATUS_PARTIAL if failures else STATUS_OK
        return merged, warnings, status, ("; ".join(failures) or None)

    async def reconcile(self, property_id: str, start: str, end: str) -> ReservationSet:
        start_d = parse_day(start)
        end_d = parse_day(end)
        bad = [f"{name}: expected YYYY-MM-DD, got {v!r}" for name, v, d in (("start", start, start_d), ("end", end, end_d)) if d is None]
        if bad:
            raise ValidationError(bad)
        if end_d < start_d:
            raise ValidationError(["end must not be before start"])

        with correlation_scope():
            rows, warnings, status, error = await self.collect(property_id, start, end)

            if status == STATUS_ERROR:
                log.warning("reconcile degraded to empty result", extra={"property_id": property_id})
                return ReservationSet(
                    property_id=str(property_id),
                    start=start,
                    end=end,
                    status=STATUS_ERROR,
                    warnings=warnings,
                    error=error,
                )

            if not self.is_full_range(start, end):
                rows = [r for r in rows if touches_window(r, start_d, end_d)]
            rows = sort_most_recent_first(rows)

            log.info("reconciled %d reservations", len(rows), extra={"property_id": property_id})
            return ReservationSet(
                property_id=str(property_id),
                start=start,
                end=end,
                status=status,
                reservations=rows,
                summary=summarize(rows),
                data_quality=data_quality(rows, today=self.today(), email_sentinel=self.settings.email_not_provided),
                warnings=warnings,
                error=error,
            )
