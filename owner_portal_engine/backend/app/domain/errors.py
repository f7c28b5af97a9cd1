# backend/app/domain/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class EngineError(Exception):
    pass


class UpstreamUnavailable(EngineError):
    """
    Network/provider failure talking to an upstream reservation or compliance system.

    Read paths degrade to empty/fallback data when they catch this.
    Write paths (compliance send) fall back to a local record.
    """

    def __init__(self, provider: str, operation: str, detail: str = "") -> None:
        self.provider = provider
        self.operation = operation
        self.detail = detail
        msg = f"{provider}.{operation} unavailable"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class ValidationError(EngineError):
    """Caller-supplied data failed structural checks. Carries the full error list."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "validation failed")


@dataclass(frozen=True)
class ReconciliationWarning:
    """Non-fatal data-quality note surfaced next to a successful result. Never raised."""

    code: str
    message: str
    reservation_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "reservation_id": self.reservation_id}


# -------------------- Arithmetic guards --------------------

def safe_div(n: float, d: float, default: float = 0.0) -> float:
    try:
        if not d:
            return float(default)
        return float(n) / float(d)
    except (TypeError, ValueError):
        return float(default)


def non_negative(x: object) -> float:
    try:
        v = float(x)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if v != v:  # NaN
        return 0.0
    return v if v > 0 else 0.0


def pct(part: float, whole: float, default: float = 0.0) -> float:
    if not whole:
        return float(default)
    return safe_div(part, whole) * 100.0
