# backend/app/domain/compliance/status.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Optional


class ComplianceState(str, Enum):
    COMPLIANT = "compliant"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"
    UNKNOWN = "unknown"

    @property
    def color(self) -> str:
        return _COLORS[self]


_COLORS = {
    ComplianceState.COMPLIANT: "green",
    ComplianceState.DUE_SOON: "amber",
    ComplianceState.OVERDUE: "red",
    ComplianceState.UNKNOWN: "error",
}


class DataSource(str, Enum):
    PRIMARY = "primary"  # last date reported by the compliance provider
    LOCAL = "local"  # newest locally recorded submission
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ComplianceRecord:
    property_id: str
    last_submission: Optional[date]
    next_due: Optional[date]
    days_until_due: Optional[int]
    state: ComplianceState
    data_source: DataSource
    error: Optional[str] = None

    @property
    def color(self) -> str:
        return self.state.color

    def to_dict(self) -> dict[str, Any]:
        return {
            "property_id": self.property_id,
            "last_submission": self.last_submission.isoformat() if self.last_submission else None,
            "next_due": self.next_due.isoformat() if self.next_due else None,
            "days_until_due": self.days_until_due,
            "state": self.state.value,
            "color": self.color,
            "data_source": self.data_source.value,
            "error": self.error,
        }


def classify(days_until_due: Optional[int], *, due_soon_days: int = 7) -> ComplianceState:
    """
    <0        -> overdue
    0..window -> due_soon (both ends inclusive)
    >window   -> compliant
    None      -> unknown
    """
    if days_until_due is None:
        return ComplianceState.UNKNOWN
    if days_until_due < 0:
        return ComplianceState.OVERDUE
    if days_until_due <= due_soon_days:
        return ComplianceState.DUE_SOON
    return ComplianceState.COMPLIANT


def compute_record(
    property_id: str,
    last_submission: Optional[date],
    *,
    today: date,
    data_source: DataSource,
    grace_days: int = 7,
    due_soon_days: int = 7,
    error: Optional[str] = None,
) -> ComplianceRecord:
    if last_submission is None:
        return ComplianceRecord(
            property_id=str(property_id),
            last_submission=None,
            next_due=None,
            days_until_due=None,
            state=ComplianceState.UNKNOWN,
            data_source=DataSource.UNAVAILABLE,
            error=error,
        )

    next_due = last_submission + timedelta(days=int(grace_days))
    days = (next_due - today).days
    return ComplianceRecord(
        property_id=str(property_id),
        last_submission=last_submission,
        next_due=next_due,
        days_until_due=days,
        state=classify(days, due_soon_days=due_soon_days),
        data_source=data_source,
        error=error,
    )
