# backend/app/domain/field_resolution.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping


@dataclass(frozen=True)
class FieldSpec:
    """
    One logical field and the ordered upstream spellings it may arrive under.
    The first alias holding a present value wins; `default` is used when none do.
    """

    name: str
    aliases: tuple[str, ...]
    default: Any = None


def _present(v: Any) -> bool:
    if v is None:
        return False
    if isinstance(v, str) and not v.strip():
        return False
    return True


def resolve(record: Mapping[str, Any], spec: FieldSpec) -> Any:
    for alias in spec.aliases:
        v = record.get(alias)
        if _present(v):
            return v
    return spec.default


def resolve_all(record: Mapping[str, Any], specs: Iterable[FieldSpec]) -> dict[str, Any]:
    return {s.name: resolve(record, s) for s in specs}


# -------------------- Resolution tables --------------------
#
# | logical field     | aliases (in order)                                        | default |
# |-------------------|-----------------------------------------------------------|---------|
# | guest_email       | guestEmail, email, contactEmail, guestContactEmail        | None    |
# | guest_name        | guestName, guest_name, name                               | None    |
# | check_in          | checkIn, checkin, check_in, checkInDate                   | None    |
# | check_out         | checkOut, checkout, check_out, checkOutDate               | None    |
# | adults            | adults, guestCount, totalGuests                           | None    |
# | children          | children, childCount                                      | 0       |
# | reservation_code  | reservationCode, code, id                                 | None    |
# | last_submission   | lastSibaDate, lastSubmissionDate, last_date, date         | None    |

GUEST_EMAIL = FieldSpec("guest_email", ("guestEmail", "email", "contactEmail", "guestContactEmail"))
GUEST_NAME = FieldSpec("guest_name", ("guestName", "guest_name", "name"))
CHECK_IN = FieldSpec("check_in", ("checkIn", "checkin", "check_in", "checkInDate"))
CHECK_OUT = FieldSpec("check_out", ("checkOut", "checkout", "check_out", "checkOutDate"))
ADULTS = FieldSpec("adults", ("adults", "guestCount", "totalGuests"))
CHILDREN = FieldSpec("children", ("children", "childCount"), default=0)
RESERVATION_CODE = FieldSpec("reservation_code", ("reservationCode", "code", "id"))
LAST_SUBMISSION_DATE = FieldSpec("last_submission", ("lastSibaDate", "lastSubmissionDate", "last_date", "date"))

SUBMISSION_FIELDS: tuple[FieldSpec, ...] = (GUEST_NAME, CHECK_IN, CHECK_OUT, ADULTS, CHILDREN, RESERVATION_CODE)
