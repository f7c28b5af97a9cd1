# backend/app/domain/reservations.py
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional

from ..schemas import PrimaryReservationIn, SecondaryReservationIn
from .errors import ReconciliationWarning, non_negative, safe_div
from .field_resolution import GUEST_EMAIL, resolve
from .periods import parse_day
from .status_mapping import (
    normalize_booking_status,
    normalize_payment_status,
    prederive_payment_status,
)

SOURCE_PRIMARY = "primary"
SOURCE_SECONDARY = "secondary"


@dataclass(frozen=True)
class Reservation:
    """Canonical reservation. Prices are what the host actually received (no commission subtracted)."""

    id: str
    property_id: str
    source: str
    guest_name: str
    guest_email: str
    guest_phone: Optional[str]
    channel: str
    arrival: date
    departure: date
    nights: int
    adults: int
    children: int
    total_price: float
    cleaning_fee: float  # informational, already included in total_price
    city_tax: float
    status: str
    payment_status: str
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    confirmation_code: Optional[str] = None
    currency: str = "EUR"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    host_commission: float = 0.0
    extra_fees: float = 0.0

    @property
    def total_guests(self) -> int:
        return int(self.adults) + int(self.children)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["arrival"] = self.arrival.isoformat()
        d["departure"] = self.departure.isoformat()
        return d


@dataclass(frozen=True)
class ReservationSummary:
    count: int = 0
    total_revenue: float = 0.0
    total_cleaning_fees: float = 0.0
    total_tourist_tax: float = 0.0
    total_nights: int = 0
    average_nightly_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DataQualityReport:
    total_bookings: int = 0
    missing_email_count: int = 0
    unknown_payment_count: int = 0
    future_bookings_count: int = 0
    email_availability_rate: str = "0.0%"
    notes: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# -------------------- Pure helpers --------------------

def compute_nights(arrival: date | datetime, departure: date | datetime) -> int:
    """ceil((departure - arrival) / 1 day); 0 when departure is not after arrival."""
    if isinstance(arrival, datetime) and isinstance(departure, datetime):
        seconds = (departure - arrival).total_seconds()
        return max(0, math.ceil(seconds / 86400.0))
    a = arrival.date() if isinstance(arrival, datetime) else arrival
    d = departure.date() if isinstance(departure, datetime) else departure
    return max(0, (d - a).days)


def format_hour(hour: Optional[int]) -> Optional[str]:
    if hour is None:
        return None
    try:
        h = int(hour)
    except (TypeError, ValueError):
        return None
    if not 0 <= h <= 23:
        return None
    return f"{h:02d}:00"


def touches_window(r: Reservation, start: date, end: date) -> bool:
    """
    Arrival OR departure inside [start, end], inclusive.
    A stay that fully spans the window with neither endpoint inside is not matched.
    """
    return (start <= r.arrival <= end) or (start <= r.departure <= end)


def sort_most_recent_first(rows: Iterable[Reservation]) -> list[Reservation]:
    return sorted(rows, key=lambda r: r.arrival, reverse=True)


def _name_key(name: str) -> str:
    return " ".join((name or "").lower().split())


def same_stay(a: Reservation, b: Reservation) -> bool:
    if a.confirmation_code and b.confirmation_code and a.confirmation_code == b.confirmation_code:
        return True
    if a.confirmation_code and a.confirmation_code == b.id:
        return True
    if b.confirmation_code and b.confirmation_code == a.id:
        return True
    return (
        bool(_name_key(a.guest_name))
        and _name_key(a.guest_name) == _name_key(b.guest_name)
        and a.arrival == b.arrival
        and a.departure == b.departure
    )


def merge_sources(primary: list[Reservation], secondary: list[Reservation]) -> list[Reservation]:
    """Primary records win; a secondary record is kept only when no primary record is the same stay."""
    merged = list(primary)
    for s in secondary:
        if not any(same_stay(p, s) for p in primary):
            merged.append(s)
    return merged


def summarize(rows: Iterable[Reservation]) -> ReservationSummary:
    rows = list(rows)
    if not rows:
        return ReservationSummary()

    revenue = sum(r.total_price for r in rows)
    cleaning = sum(r.cleaning_fee for r in rows)
    tax = sum(r.city_tax for r in rows)
    nights = sum(int(r.nights) for r in rows)
    # per-booking nightly rate, averaged across bookings
    avg_rate = sum(safe_div(r.total_price, r.nights) for r in rows) / len(rows)

    return ReservationSummary(
        count=len(rows),
        total_revenue=round(float(revenue), 2),
        total_cleaning_fees=round(float(cleaning), 2),
        total_tourist_tax=round(float(tax), 2),
        total_nights=int(nights),
        average_nightly_rate=round(float(avg_rate), 2),
    )


def data_quality(rows: Iterable[Reservation], *, today: date, email_sentinel: str) -> DataQualityReport:
    rows = list(rows)
    horizon = date(today.year + 1, 12, 31)

    far_future = [r for r in rows if r.arrival > horizon]
    no_email = [r for r in rows if not r.guest_email or r.guest_email == email_sentinel]
    unknown_pay = [r for r in rows if r.payment_status == "Unknown"]

    total = len(rows)
    rate = ((total - len(no_email)) / total * 100.0) if total else 0.0

    return DataQualityReport(
        total_bookings=total,
        missing_email_count=len(no_email),
        unknown_payment_count=len(unknown_pay),
        future_bookings_count=len(far_future),
        email_availability_rate=f"{rate:.1f}%",
        notes={
            "missing_emails": "Guest emails are often withheld by booking channels for privacy reasons",
            "future_bookings": (
                f"{len(far_future)} bookings arrive in {today.year + 2} or later"
                if far_future
                else "No unusual future booking dates detected"
            ),
            "payment_status": (
                f"{len(unknown_pay)} bookings have unclear payment status"
                if unknown_pay
                else "All payment statuses are clear"
            ),
        },
    )


# -------------------- Boundary conversion --------------------

def _check_dates(
    rid: str, arrival: Optional[date], departure: Optional[date], warnings: list[ReconciliationWarning]
) -> bool:
    if arrival is None or departure is None:
        warnings.append(ReconciliationWarning("missing_dates", "Reservation has no arrival/departure date", rid))
        return False
    if departure <= arrival:
        warnings.append(ReconciliationWarning("invalid_stay", "Departure is not after arrival", rid))
        return False
    return True


def _nights(rid: str, reported: Optional[int], arrival: date, departure: date, warnings: list[ReconciliationWarning]) -> int:
    computed = compute_nights(arrival, departure)
    if reported is not None and int(reported) != computed:
        warnings.append(
            ReconciliationWarning(
                "nights_mismatch",
                f"Upstream reported {reported} nights, dates imply {computed}",
                rid,
            )
        )
    return computed


def _count(v: Optional[int], default: int) -> int:
    if v is None:
        return default
    try:
        return max(0, int(v))
    except (TypeError, ValueError):
        return default


def from_primary(
    dto: PrimaryReservationIn,
    *,
    property_id: str,
    email_sentinel: str,
    default_currency: str = "EUR",
    warnings: list[ReconciliationWarning],
) -> Optional[Reservation]:
    rid = str(dto.id or dto.confirmation_code or "")
    arrival = parse_day(dto.arrival_date)
    departure = parse_day(dto.departure_date)
    if not _check_dates(rid, arrival, departure, warnings):
        return None

    email = resolve(dto.aliased(), GUEST_EMAIL)
    if not email:
        warnings.append(ReconciliationWarning("missing_email", "Guest email not provided by channel", rid))

    name = dto.guest_name or f"{dto.guest_first_name or ''} {dto.guest_last_name or ''}".strip()
    status = normalize_booking_status(dto.status)
    raw_payment = prederive_payment_status(
        dto.payment_status, is_paid=dto.is_paid, remaining_balance=dto.remaining_balance
    )

    return Reservation(
        id=rid,
        property_id=str(property_id),
        source=SOURCE_PRIMARY,
        guest_name=name,
        guest_email=str(email) if email else email_sentinel,
        guest_phone=dto.guest_phone or dto.phone,
        channel=dto.channel_name or dto.source or "Direct",
        arrival=arrival,
        departure=departure,
        nights=_nights(rid, dto.nights, arrival, departure, warnings),
        adults=_count(dto.adults, 1) or 1,
        children=_count(dto.children, 0),
        total_price=non_negative(dto.total_price),
        cleaning_fee=non_negative(dto.cleaning_fee),
        city_tax=non_negative(dto.city_tax if dto.city_tax is not None else dto.tourist_tax),
        status=status,
        payment_status=normalize_payment_status(raw_payment, status),
        check_in_time=format_hour(dto.check_in_time),
        check_out_time=format_hour(dto.check_out_time),
        confirmation_code=dto.confirmation_code,
        currency=dto.currency or default_currency,
        created_at=dto.created_at or dto.inserted_on,
        updated_at=dto.updated_at or dto.last_modified,
    )


def from_secondary(
    dto: SecondaryReservationIn,
    *,
    property_id: str,
    email_sentinel: str,
    default_currency: str = "EUR",
    warnings: list[ReconciliationWarning],
) -> Optional[Reservation]:
    rid = str(dto.rcode or "")
    arrival = parse_day(dto.in_date) or parse_day(dto.arrival)
    departure = parse_day(dto.out_date) or parse_day(dto.departure)
    if not _check_dates(rid, arrival, departure, warnings):
        return None

    email = resolve(dto.aliased(), GUEST_EMAIL)
    if not email:
        warnings.append(ReconciliationWarning("missing_email", "Guest email not provided by channel", rid))

    adults = _count(dto.adults, 0)
    children = _count(dto.children, 0)
    if adults == 0:
        # pax is the head count; whatever is not a known child is an adult
        adults = max(1, _count(dto.pax, 1) - children)

    # back-office rows without a status are live stays
    status = normalize_booking_status(dto.status or "confirmed")

    return Reservation(
        id=rid,
        property_id=str(property_id),
        source=SOURCE_SECONDARY,
        guest_name=f"{dto.firstname or ''} {dto.lastname or ''}".strip(),
        guest_email=str(email) if email else email_sentinel,
        guest_phone=dto.phone,
        channel=dto.provider or "Direct",
        arrival=arrival,
        departure=departure,
        nights=compute_nights(arrival, departure),
        adults=adults,
        children=children,
        total_price=non_negative(dto.received_amount),
        cleaning_fee=non_negative(dto.cleaning_fee),
        city_tax=non_negative(dto.city_tax),
        status=status,
        payment_status=normalize_payment_status(None, status),
        confirmation_code=dto.rcode,
        currency=default_currency,
        host_commission=non_negative(dto.host_commission),
        extra_fees=non_negative(dto.extra_fees),
    )
