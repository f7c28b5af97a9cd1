# backend/app/domain/compliance/metrics.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Callable, Iterable, Sequence, TypeVar

from ..reservations import Reservation
from .status import ComplianceRecord, ComplianceState

T = TypeVar("T")

FLAG_OVERDUE = "overdue"
FLAG_DUE_SOON = "due_soon"
FLAG_COMPLIANT = "compliant"
FLAG_ERROR = "error"
FLAG_PENDING = "pending"
FLAG_LOW_COMPLIANCE = "low_compliance"

PRIORITY = {FLAG_OVERDUE: 0, FLAG_DUE_SOON: 1, FLAG_COMPLIANT: 2, FLAG_ERROR: 3}


@dataclass(frozen=True)
class ComplianceMetrics:
    total_reservations: int = 0
    pending_submissions: int = 0
    overdue_submissions: int = 0
    compliance_rate: int = 100

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_metrics(
    reservations: Iterable[Reservation],
    *,
    today: date,
    window_days: int = 30,
    grace_days: int = 7,
) -> ComplianceMetrics:
    """
    pending: checkout within the last `window_days` (today inclusive)
    overdue: pending and more than `grace_days` past checkout
    """
    rows = list(reservations)
    window_start = today - timedelta(days=int(window_days))

    pending = [r for r in rows if window_start <= r.departure <= today]
    overdue = [r for r in pending if (today - r.departure).days > int(grace_days)]

    if pending:
        rate = round((len(pending) - len(overdue)) / len(pending) * 100)
    else:
        rate = 100

    return ComplianceMetrics(
        total_reservations=len(rows),
        pending_submissions=len(pending),
        overdue_submissions=len(overdue),
        compliance_rate=int(rate),
    )


def flags_for(
    record: ComplianceRecord,
    metrics: ComplianceMetrics,
    *,
    low_compliance_threshold: int = 80,
) -> list[str]:
    """First flag is the row's priority flag; `pending` / `low_compliance` follow."""
    flags: list[str] = []

    if record.state == ComplianceState.UNKNOWN:
        flags.append(FLAG_ERROR)
    elif record.state == ComplianceState.OVERDUE or metrics.overdue_submissions > 0:
        flags.append(FLAG_OVERDUE)
    elif record.state == ComplianceState.DUE_SOON:
        flags.append(FLAG_DUE_SOON)
    else:
        flags.append(FLAG_COMPLIANT)

    if metrics.pending_submissions > 0:
        flags.append(FLAG_PENDING)
    if metrics.compliance_rate < low_compliance_threshold:
        flags.append(FLAG_LOW_COMPLIANCE)
    return flags


def sort_by_priority(rows: Sequence[T], primary_flag: Callable[[T], str]) -> list[T]:
    # sorted() is stable: ties keep input order
    return sorted(rows, key=lambda row: PRIORITY.get(primary_flag(row), len(PRIORITY)))
