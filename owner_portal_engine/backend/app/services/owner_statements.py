# backend/app/services/owner_statements.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..clients.base import ReservationProvider
from ..config import Settings, settings as default_settings
from ..correlation import correlation_scope
from ..domain.errors import ReconciliationWarning, ValidationError
from ..domain.periods import parse_day
from ..domain.reservations import SOURCE_SECONDARY
from ..domain.statements import Statement, compute_statement, normalize_commission_rate
from .record_store import RecordStore, property_entry
from .reservation_reconciler import STATUS_ERROR, STATUS_OK, convert_rows

log = logging.getLogger("owner_portal.statements")


@dataclass(frozen=True)
class OwnerStatementResult:
    status: str
    statement: Statement
    property_name: Optional[str] = None
    warnings: list[ReconciliationWarning] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "error": self.error,
            "property_name": self.property_name,
            "statement": self.statement.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
        }


async def property_terms(store: RecordStore, property_id: str, cfg: Settings) -> tuple[Optional[str], bool, float]:
    """
    (name, is_admin_owned, commission_rate as a ratio). Unknown properties are owner
    properties at the default rate; a stored rate that is not a number raises ValidationError.
    """
    entry = await property_entry(store, property_id) or {}
    return (
        entry.get("name"),
        bool(entry.get("is_admin_owned", False)),
        normalize_commission_rate(entry.get("commission_rate"), cfg.default_commission_rate),
    )


async def owner_statement(
    backoffice: ReservationProvider,
    store: RecordStore,
    property_id: str,
    start: str,
    end: str,
    commission_rate: Optional[float] = None,
    *,
    settings: Optional[Settings] = None,
) -> OwnerStatementResult:
    """
    Statement for reservations arriving inside [start, end], from the back-office
    payout breakdown (received amount, host commission, cleaning fee).
    """
    cfg = settings or default_settings
    pid = str(property_id)
    start_d, end_d = parse_day(start), parse_day(end)
    if start_d is None or end_d is None or end_d < start_d:
        raise ValidationError([f"invalid statement window: {start!r}..{end!r}"])

    name, admin_owned, stored_rate = await property_terms(store, pid, cfg)
    rate = normalize_commission_rate(commission_rate, stored_rate)

    with correlation_scope():
        try:
            rows = await backoffice.get_reservations(pid, start, end)
        except Exception as e:
            log.warning("statement reservations unavailable", extra={"property_id": pid}, exc_info=e)
            return OwnerStatementResult(
                status=STATUS_ERROR,
                statement=compute_statement(
                    [], rate, admin_owned, vat_rate=cfg.cleaning_fee_vat_rate, property_id=pid, start=start, end=end
                ),
                property_name=name,
                error=str(e) or type(e).__name__,
            )

        warnings: list[ReconciliationWarning] = []
        reservations = convert_rows(rows, source=SOURCE_SECONDARY, property_id=pid, cfg=cfg, warnings=warnings)
        in_window = [r for r in reservations if start_d <= r.arrival <= end_d]

        statement = compute_statement(
            in_window,
            rate,
            admin_owned,
            vat_rate=cfg.cleaning_fee_vat_rate,
            property_id=pid,
            start=start,
            end=end,
        )
        log.info("owner statement: %d reservations", statement.reservation_count, extra={"property_id": pid})
        return OwnerStatementResult(status=STATUS_OK, statement=statement, property_name=name, warnings=warnings)
