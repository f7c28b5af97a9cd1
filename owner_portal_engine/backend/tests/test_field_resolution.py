# backend/tests/test_field_resolution.py
from __future__ import annotations

from app.domain.field_resolution import (
    CHILDREN,
    GUEST_EMAIL,
    LAST_SUBMISSION_DATE,
    SUBMISSION_FIELDS,
    FieldSpec,
    resolve,
    resolve_all,
)


def test_first_present_alias_wins():
    rec = {"email": "b@x.pt", "guestEmail": "a@x.pt"}
    assert resolve(rec, GUEST_EMAIL) == "a@x.pt"


def test_blank_values_are_skipped():
    rec = {"guestEmail": "  ", "email": None, "contactEmail": "c@x.pt"}
    assert resolve(rec, GUEST_EMAIL) == "c@x.pt"


def test_default_when_no_alias_present():
    assert resolve({}, CHILDREN) == 0
    assert resolve({}, GUEST_EMAIL) is None
    assert resolve({"x": 1}, FieldSpec("y", ("y",), default="fallback")) == "fallback"


def test_zero_is_a_present_value():
    assert resolve({"childCount": 0, "children": None}, CHILDREN) == 0
    out = resolve_all({"guestCount": 0}, SUBMISSION_FIELDS)
    assert out["adults"] == 0


def test_submission_spellings():
    out = resolve_all(
        {"name": "Ana", "checkin": "2025-07-10", "checkOutDate": "2025-07-15", "totalGuests": 2, "code": "R1"},
        SUBMISSION_FIELDS,
    )
    assert out == {
        "guest_name": "Ana",
        "check_in": "2025-07-10",
        "check_out": "2025-07-15",
        "adults": 2,
        "children": 0,
        "reservation_code": "R1",
    }


def test_last_submission_date_aliases():
    assert resolve({"lastSibaDate": "2025-07-30"}, LAST_SUBMISSION_DATE) == "2025-07-30"
    assert resolve({"date": "2025-07-01"}, LAST_SUBMISSION_DATE) == "2025-07-01"
