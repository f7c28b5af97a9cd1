# backend/tests/test_status_mapping.py
from __future__ import annotations

from app.domain.status_mapping import (
    normalize_booking_status,
    normalize_payment_status,
    prederive_payment_status,
)


def test_booking_synonyms_collapse_to_canonical_names():
    assert normalize_booking_status("active") == "Confirmed"
    assert normalize_booking_status("  Booked ") == "Confirmed"
    assert normalize_booking_status("canceled") == "Cancelled"
    assert normalize_booking_status("cancelledByGuest") == "Cancelled"
    assert normalize_booking_status("no-show") == "No Show"
    assert normalize_booking_status("checked_out") == "Completed"


def test_booking_status_is_total():
    assert normalize_booking_status(None) == "Unknown"
    assert normalize_booking_status("   ") == "Unknown"
    # unrecognized values pass through verbatim
    assert normalize_booking_status("awaitingPayment") == "awaitingPayment"
    assert normalize_booking_status(42) == "42"


def test_void_bookings_have_no_payment():
    assert normalize_payment_status("paid", "Cancelled") == "N/A"
    assert normalize_payment_status(None, "Expired") == "N/A"


def test_inquiries_are_pending_whatever_the_raw_value():
    assert normalize_payment_status("paid", "In Enquiry") == "Pending"
    assert normalize_payment_status(None, "Pending") == "Pending"


def test_missing_payment_is_derived_from_booking():
    assert normalize_payment_status(None, "Confirmed") == "Paid"
    assert normalize_payment_status("", "Modified") == "Paid"
    assert normalize_payment_status(None, "Completed") == "Pending"


def test_unknown_payment_never_leaks():
    for booking in ("Confirmed", "Unknown", "Completed", "Modified", "", None):
        assert normalize_payment_status("Unknown", booking) != "Unknown"
        assert normalize_payment_status(None, booking) != "Unknown"


def test_payment_synonyms_and_passthrough():
    assert normalize_payment_status("partially_paid", "Confirmed") == "Partial"
    assert normalize_payment_status("declined", "Confirmed") == "Failed"
    assert normalize_payment_status("refund", "Confirmed") == "Refunded"
    assert normalize_payment_status("Chargeback", "Confirmed") == "Chargeback"


def test_prederive_uses_balance_flags():
    assert prederive_payment_status("pending", is_paid=True) == "pending"
    assert prederive_payment_status(None, is_paid=True) == "Paid"
    assert prederive_payment_status(None, remaining_balance=0) == "Paid"
    assert prederive_payment_status(None, remaining_balance=120.5) == "Partial"
    assert prederive_payment_status(None) is None


def test_drifted_booking_values_classify_by_whole_word():
    assert normalize_payment_status(None, "unconfirmed") == "Pending"
    assert normalize_payment_status(None, "inactive") == "Pending"
    assert normalize_payment_status(None, "confirmed_by_host") == "Paid"
    assert normalize_payment_status(None, "Active") == "Paid"
    assert normalize_payment_status("paid", "cancellation_requested") == "N/A"
    assert normalize_payment_status("paid", "new") == "Pending"
    assert normalize_payment_status("paid", "renewed") == "Paid"
