# backend/app/domain/statements.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from .errors import ValidationError, non_negative
from .reservations import Reservation

CENT = Decimal("0.01")


def round_currency(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _dec(x: object) -> Decimal:
    # str() keeps 0.1 as 0.1 instead of its binary expansion
    return Decimal(str(non_negative(x)))


def normalize_commission_rate(x: object, default: float = 0.25) -> float:
    """
    Ratio in [0, 1] from either form:
      - 0.25 (ratio; 1 means 100%)
      - 25   (percent; anything above 1, so 1.5 is 1.5%)

    None is the default rate. Negative rates clamp to 0 and rates above 100% to 1.
    Anything non-numeric raises ValidationError.
    """
    if x is None:
        return float(default)
    try:
        v = float(x)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError([f"commission_rate: expected a number, got {x!r}"]) from None
    if v != v or v in (float("inf"), float("-inf")):
        raise ValidationError([f"commission_rate: expected a finite number, got {x!r}"])
    if v <= 0:
        return 0.0
    if v > 1.0:
        v = v / 100.0
    return float(min(v, 1.0))


@dataclass(frozen=True)
class StatementLine:
    reservation_id: str
    guest_name: str
    arrival: str
    departure: str
    received_amount: float
    host_commission: float
    cleaning_fee: float
    commissionable_amount: float
    management_commission: float
    cleaning_fee_invoiced: float
    extra_fees: float = 0.0
    city_tax: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return dict(self.__dict__)


@dataclass(frozen=True)
class Statement:
    commission_rate: float
    is_admin_owned: bool
    vat_rate: float
    lines: list[StatementLine] = field(default_factory=list)
    total_received_amount: float = 0.0
    total_host_commission: float = 0.0
    total_cleaning_fees: float = 0.0
    total_cleaning_fees_invoiced: float = 0.0
    total_extra_fees: float = 0.0
    total_city_tax: float = 0.0
    management_commission: float = 0.0
    total_to_invoice: float = 0.0
    total_to_pay: float = 0.0
    property_id: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None

    @property
    def reservation_count(self) -> int:
        return len(self.lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "property_id": self.property_id,
            "start": self.start,
            "end": self.end,
            "commission_rate": self.commission_rate,
            "commission_percentage": round(self.commission_rate * 100.0, 2),
            "is_admin_owned": self.is_admin_owned,
            "vat_rate": self.vat_rate,
            "reservation_count": self.reservation_count,
            "total_received_amount": self.total_received_amount,
            "total_host_commission": self.total_host_commission,
            "total_cleaning_fees": self.total_cleaning_fees,
            "total_cleaning_fees_invoiced": self.total_cleaning_fees_invoiced,
            "total_extra_fees": self.total_extra_fees,
            "total_city_tax": self.total_city_tax,
            "management_commission": self.management_commission,
            "total_to_invoice": self.total_to_invoice,
            "total_to_pay": self.total_to_pay,
            "lines": [ln.to_dict() for ln in self.lines],
        }


def compute_line(
    r: Reservation, *, rate: Decimal, vat: Decimal, is_admin_owned: bool
) -> tuple[StatementLine, dict[str, Decimal]]:
    received = _dec(r.total_price)
    host_commission = _dec(r.host_commission)
    cleaning = _dec(r.cleaning_fee)

    commissionable = max(Decimal("0"), received + host_commission - cleaning)
    if is_admin_owned:
        commission = Decimal("0.00")
        cleaning_invoiced = round_currency(cleaning)
    else:
        commission = round_currency(rate * commissionable)
        cleaning_invoiced = round_currency(cleaning * (Decimal("1") + vat))

    parts = {
        "received": round_currency(received),
        "host_commission": round_currency(host_commission),
        "cleaning": round_currency(cleaning),
        "cleaning_invoiced": cleaning_invoiced,
        "commission": commission,
        "extra_fees": round_currency(_dec(r.extra_fees)),
        "city_tax": round_currency(_dec(r.city_tax)),
    }
    line = StatementLine(
        reservation_id=r.id,
        guest_name=r.guest_name,
        arrival=r.arrival.isoformat(),
        departure=r.departure.isoformat(),
        received_amount=float(parts["received"]),
        host_commission=float(parts["host_commission"]),
        cleaning_fee=float(parts["cleaning"]),
        commissionable_amount=float(round_currency(commissionable)),
        management_commission=float(commission),
        cleaning_fee_invoiced=float(cleaning_invoiced),
        extra_fees=float(parts["extra_fees"]),
        city_tax=float(parts["city_tax"]),
    )
    return line, parts


def compute_statement(
    reservations: Iterable[Reservation],
    commission_rate: object,
    is_admin_owned: bool,
    *,
    vat_rate: float = 0.23,
    property_id: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> Statement:
    """
    Per line:
      commissionable = max(0, received + host_commission - cleaning_fee)
      commission     = 0 if admin-owned else round(rate * commissionable, 2)
      cleaning       = fee if admin-owned else round(fee * (1 + vat), 2)

    Totals are sums of rounded lines, so to_pay + to_invoice == received to the cent.
    """
    rate_f = normalize_commission_rate(commission_rate)
    rate = Decimal(str(rate_f))
    vat = Decimal(str(non_negative(vat_rate)))

    lines: list[StatementLine] = []
    totals = {
        k: Decimal("0.00")
        for k in ("received", "host_commission", "cleaning", "cleaning_invoiced", "commission", "extra_fees", "city_tax")
    }
    for r in reservations:
        line, parts = compute_line(r, rate=rate, vat=vat, is_admin_owned=bool(is_admin_owned))
        lines.append(line)
        for k, v in parts.items():
            totals[k] += v

    to_invoice = totals["commission"] + totals["cleaning_invoiced"]
    to_pay = totals["received"] - to_invoice

    return Statement(
        commission_rate=rate_f,
        is_admin_owned=bool(is_admin_owned),
        vat_rate=float(vat),
        lines=lines,
        total_received_amount=float(totals["received"]),
        total_host_commission=float(totals["host_commission"]),
        total_cleaning_fees=float(totals["cleaning"]),
        total_cleaning_fees_invoiced=float(totals["cleaning_invoiced"]),
        total_extra_fees=float(totals["extra_fees"]),
        total_city_tax=float(totals["city_tax"]),
        management_commission=float(totals["commission"]),
        total_to_invoice=float(to_invoice),
        total_to_pay=float(to_pay),
        property_id=property_id,
        start=start,
        end=end,
    )
