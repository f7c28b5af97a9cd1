# backend/app/domain/compliance/validation.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from ..errors import ValidationError
from ..field_resolution import SUBMISSION_FIELDS, resolve_all
from ..periods import parse_day
from ..reservations import Reservation

REQUIRED = ("guest_name", "check_in", "check_out", "adults")

# Error texts are shown to operators as-is.
_LABELS = {
    "guest_name": "guestName",
    "check_in": "checkIn",
    "check_out": "checkOut",
    "adults": "adults",
}


@dataclass(frozen=True)
class NormalizedSubmission:
    guest_name: str
    check_in: date
    check_out: date
    adults: int
    children: int
    reservation_code: Optional[str]

    @property
    def total_guests(self) -> int:
        return self.adults + self.children

    def to_dict(self) -> dict[str, Any]:
        return {
            "guest_name": self.guest_name,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "adults": self.adults,
            "children": self.children,
            "guest_count": self.total_guests,
            "reservation_code": self.reservation_code,
        }


def _as_int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return int(float(v))
    except (TypeError, ValueError):
        return None


def normalize_submission(data: Mapping[str, Any]) -> NormalizedSubmission:
    """
    Resolves the caller's field spellings and runs the structural checks.

    Raises ValidationError with every problem found in the first failing stage:
    missing fields, then date order, then guest count.
    """
    raw = resolve_all(data or {}, SUBMISSION_FIELDS)

    missing = [_LABELS[k] for k in REQUIRED if raw.get(k) is None]
    if missing:
        raise ValidationError([f"Missing required fields: {', '.join(missing)}"])

    errors: list[str] = []
    check_in = parse_day(raw["check_in"])
    check_out = parse_day(raw["check_out"])
    adults = _as_int(raw["adults"])
    children = _as_int(raw["children"])

    if check_in is None:
        errors.append(f"Invalid check-in date: {raw['check_in']!r}")
    if check_out is None:
        errors.append(f"Invalid check-out date: {raw['check_out']!r}")
    if adults is None or adults < 0:
        errors.append(f"Invalid adult count: {raw['adults']!r}")
    if children is None or children < 0:
        errors.append(f"Invalid child count: {raw['children']!r}")
    if errors:
        raise ValidationError(errors)

    if check_out <= check_in:
        raise ValidationError(["Check-out date must be after check-in date"])

    if adults + children == 0:
        raise ValidationError(["Guest count cannot be zero"])

    code = raw.get("reservation_code")
    return NormalizedSubmission(
        guest_name=str(raw["guest_name"]).strip(),
        check_in=check_in,
        check_out=check_out,
        adults=adults,
        children=children,
        reservation_code=str(code).strip() if code is not None else None,
    )


def find_matching_reservation(
    candidates: Iterable[Reservation], submission: NormalizedSubmission
) -> Optional[Reservation]:
    """
    Case-insensitive guest-name substring match plus exact check-in and check-out dates.
    Only candidates carrying a reservation code qualify. Several matches: earliest arrival, then id.
    """
    needle = submission.guest_name.lower()
    if not needle:
        return None

    hits = [
        r
        for r in candidates
        if r.confirmation_code
        and needle in (r.guest_name or "").lower()
        and r.arrival == submission.check_in
        and r.departure == submission.check_out
    ]
    if not hits:
        return None
    return sorted(hits, key=lambda r: (r.arrival, r.id))[0]
