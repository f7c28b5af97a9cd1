# backend/app/domain/status_mapping.py
from __future__ import annotations

import re
from enum import Enum
from typing import Any, Optional


class BookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    IN_ENQUIRY = "In Enquiry"
    INQUIRY_PREAPPROVED = "Inquiry Preapproved"
    PENDING = "Pending"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"
    MODIFIED = "Modified"
    NO_SHOW = "No Show"
    COMPLETED = "Completed"
    UNKNOWN = "Unknown"


class PaymentStatus(str, Enum):
    PAID = "Paid"
    PENDING = "Pending"
    PARTIAL = "Partial"
    FAILED = "Failed"
    REFUNDED = "Refunded"
    NOT_APPLICABLE = "N/A"


# Keys are lower-cased and trimmed before lookup.
BOOKING_SYNONYMS: dict[str, BookingStatus] = {
    "confirmed": BookingStatus.CONFIRMED,
    "active": BookingStatus.CONFIRMED,
    "booked": BookingStatus.CONFIRMED,
    "reserved": BookingStatus.CONFIRMED,
    "inquiry": BookingStatus.IN_ENQUIRY,
    "inquirypreapproved": BookingStatus.INQUIRY_PREAPPROVED,
    "preapproved": BookingStatus.INQUIRY_PREAPPROVED,
    "pending": BookingStatus.PENDING,
    "waiting": BookingStatus.PENDING,
    "expired": BookingStatus.EXPIRED,
    "timeout": BookingStatus.EXPIRED,
    "timedout": BookingStatus.EXPIRED,
    "cancelled": BookingStatus.CANCELLED,
    "canceled": BookingStatus.CANCELLED,
    "cancelledbyguest": BookingStatus.CANCELLED,
    "cancelledbyhost": BookingStatus.CANCELLED,
    "cancelledbyadmin": BookingStatus.CANCELLED,
    "modified": BookingStatus.MODIFIED,
    "changed": BookingStatus.MODIFIED,
    "updated": BookingStatus.MODIFIED,
    "noshow": BookingStatus.NO_SHOW,
    "no-show": BookingStatus.NO_SHOW,
    "no_show": BookingStatus.NO_SHOW,
    "completed": BookingStatus.COMPLETED,
    "finished": BookingStatus.COMPLETED,
    "checkedout": BookingStatus.COMPLETED,
    "checked_out": BookingStatus.COMPLETED,
}

PAYMENT_SYNONYMS: dict[str, PaymentStatus] = {
    "paid": PaymentStatus.PAID,
    "completed": PaymentStatus.PAID,
    "success": PaymentStatus.PAID,
    "successful": PaymentStatus.PAID,
    "pending": PaymentStatus.PENDING,
    "processing": PaymentStatus.PENDING,
    "waiting": PaymentStatus.PENDING,
    "partial": PaymentStatus.PARTIAL,
    "partially_paid": PaymentStatus.PARTIAL,
    "partiallypaid": PaymentStatus.PARTIAL,
    "failed": PaymentStatus.FAILED,
    "error": PaymentStatus.FAILED,
    "declined": PaymentStatus.FAILED,
    "refunded": PaymentStatus.REFUNDED,
    "refund": PaymentStatus.REFUNDED,
    "cancelled": PaymentStatus.REFUNDED,
}

_VOID = {BookingStatus.CANCELLED, BookingStatus.EXPIRED}
_INQUIRY = {BookingStatus.IN_ENQUIRY, BookingStatus.INQUIRY_PREAPPROVED, BookingStatus.PENDING}
_SETTLED = {BookingStatus.CONFIRMED, BookingStatus.MODIFIED}

# Word markers for drifted upstream values that pass through verbatim.
# Whole words only, so "unconfirmed" and "inactive" are not settled.
_VOID_PREFIXES = ("cancel", "expire")
_INQUIRY_PREFIXES = ("inquir", "enquir")
_INQUIRY_WORDS = {"pending", "new"}
_SETTLED_WORDS = {"confirmed", "active", "modified"}


def _text(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw)


def _canonical(key: str) -> Optional[BookingStatus]:
    mapped = BOOKING_SYNONYMS.get(key)
    if mapped is not None:
        return mapped
    for s in BookingStatus:
        if s.value.lower() == key:
            return s
    return None


def _booking_class(key: str) -> Optional[str]:
    """Classifies a lower-cased booking status as void, inquiry or settled; None otherwise."""
    canonical = _canonical(key)
    if canonical is not None:
        if canonical in _VOID:
            return "void"
        if canonical in _INQUIRY:
            return "inquiry"
        return "settled" if canonical in _SETTLED else None

    words = re.findall(r"[a-z]+", key)
    if any(w.startswith(_VOID_PREFIXES) for w in words):
        return "void"
    if any(w.startswith(_INQUIRY_PREFIXES) or w in _INQUIRY_WORDS for w in words):
        return "inquiry"
    if any(w in _SETTLED_WORDS for w in words):
        return "settled"
    return None


def normalize_booking_status(raw: Any) -> str:
    """
    Total: never raises. Unrecognized values come back verbatim.
    Absent/blank input resolves to "Unknown".
    """
    s = _text(raw)
    key = s.strip().lower()
    if not key:
        return BookingStatus.UNKNOWN.value

    mapped = BOOKING_SYNONYMS.get(key)
    if mapped is None:
        return s
    return mapped.value


def _derive_from_booking(booking_class: Optional[str]) -> str:
    if booking_class == "settled":
        return PaymentStatus.PAID.value
    # "Unknown" is never a terminal payment state
    return PaymentStatus.PENDING.value


def normalize_payment_status(raw_payment: Any, booking_status: Any) -> str:
    """
    Policy, evaluated in order:
      1) cancelled/expired booking      -> N/A
      2) inquiry/pending booking        -> Pending
      3) no raw payment value           -> Paid for confirmed/modified, else Pending
      4) raw "unknown"                  -> same derivation as 3)
      5) synonym table, else raw value verbatim
    """
    b = _booking_class(_text(booking_status).strip().lower())

    if b == "void":
        return PaymentStatus.NOT_APPLICABLE.value

    if b == "inquiry":
        return PaymentStatus.PENDING.value

    p_raw = _text(raw_payment)
    p = p_raw.strip().lower()
    if not p or p == "unknown":
        return _derive_from_booking(b)

    mapped = PAYMENT_SYNONYMS.get(p)
    if mapped is None:
        return p_raw
    return mapped.value


def prederive_payment_status(
    raw_payment: Any,
    *,
    is_paid: Optional[bool] = None,
    remaining_balance: Optional[float] = None,
) -> Optional[str]:
    """
    Fills a missing raw payment value from the provider's balance flags.
    Runs before normalize_payment_status; returns None when nothing can be inferred.
    """
    if _text(raw_payment).strip():
        return _text(raw_payment)
    if is_paid:
        return PaymentStatus.PAID.value
    if remaining_balance is None:
        return None
    try:
        bal = float(remaining_balance)
    except (TypeError, ValueError):
        return None
    if bal == 0:
        return PaymentStatus.PAID.value
    if bal > 0:
        return PaymentStatus.PARTIAL.value
    return None
