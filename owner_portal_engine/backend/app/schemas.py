# backend/app/schemas.py
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _UpstreamModel(BaseModel):
    """
    Boundary DTO base.

    - unknown upstream keys are ignored
    - numeric ids/codes are accepted where strings are expected
    - blank strings count as missing (upstreams send "" for absent amounts)
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def aliased(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


# -------------------- Primary provider (channel manager) --------------------

class PrimaryReservationIn(_UpstreamModel):
    id: Optional[str] = None
    listing_id: Optional[str] = Field(default=None, alias="listingId")

    guest_name: Optional[str] = Field(default=None, alias="guestName")
    guest_first_name: Optional[str] = Field(default=None, alias="guestFirstName")
    guest_last_name: Optional[str] = Field(default=None, alias="guestLastName")
    guest_email: Optional[str] = Field(default=None, alias="guestEmail")
    email: Optional[str] = None
    contact_email: Optional[str] = Field(default=None, alias="contactEmail")
    guest_contact_email: Optional[str] = Field(default=None, alias="guestContactEmail")
    guest_phone: Optional[str] = Field(default=None, alias="guestPhone")
    phone: Optional[str] = None

    channel_name: Optional[str] = Field(default=None, alias="channelName")
    source: Optional[str] = None

    arrival_date: Optional[str] = Field(default=None, alias="arrivalDate")
    departure_date: Optional[str] = Field(default=None, alias="departureDate")
    nights: Optional[int] = None
    adults: Optional[int] = None
    children: Optional[int] = None

    total_price: Optional[float] = Field(default=None, alias="totalPrice")
    cleaning_fee: Optional[float] = Field(default=None, alias="cleaningFee")
    city_tax: Optional[float] = Field(default=None, alias="cityTax")
    tourist_tax: Optional[float] = Field(default=None, alias="touristTax")
    currency: Optional[str] = None

    status: Optional[str] = None
    payment_status: Optional[str] = Field(default=None, alias="paymentStatus")
    is_paid: Optional[bool] = Field(default=None, alias="isPaid")
    remaining_balance: Optional[float] = Field(default=None, alias="remainingBalance")

    check_in_time: Optional[int] = Field(default=None, alias="checkInTime")
    check_out_time: Optional[int] = Field(default=None, alias="checkOutTime")

    confirmation_code: Optional[str] = Field(default=None, alias="confirmationCode")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    inserted_on: Optional[str] = Field(default=None, alias="insertedOn")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    last_modified: Optional[str] = Field(default=None, alias="lastModified")


class CalendarDayIn(_UpstreamModel):
    date: Optional[str] = None
    end_date: Optional[str] = Field(default=None, alias="endDate")
    status: Optional[str] = None
    price: Optional[float] = None
    minimum_stay: Optional[int] = Field(default=None, alias="minimumStay")
    reason: Optional[str] = None


# -------------------- Secondary provider (back-office / compliance) --------------------

class SecondaryReservationIn(_UpstreamModel):
    rcode: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    provider: Optional[str] = None

    # unix seconds
    in_date: Optional[int] = None
    out_date: Optional[int] = None
    # ISO fallbacks
    arrival: Optional[str] = None
    departure: Optional[str] = None

    pax: Optional[int] = None
    adults: Optional[int] = None
    children: Optional[int] = None

    received_amount: Optional[float] = None
    host_commission: Optional[float] = None
    cleaning_fee: Optional[float] = None
    extra_fees: Optional[float] = None
    city_tax: Optional[float] = None

    status: Optional[str] = None
    archived: Optional[bool] = None


class ComplianceReply(_UpstreamModel):
    """Reply from the compliance validate/send/last-date endpoints."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    status: Optional[str] = None
    submission_id: Optional[str] = Field(default=None, alias="submissionId")
    id: Optional[str] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return (self.status or "").strip().lower() == "success"

