from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterable


class BookingStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    ONLINE = "online"


def parse_date(value: Any) -> date | None:
    """Accepts ``date`` objects and ISO strings, including full timestamps."""

    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


@dataclass(frozen=True)
class RateQuery:
    room_id: int | None
    check_in: date | None
    check_out: date | None
    number_of_guests: int | None = None
    service_ids: frozenset[int] = frozenset()

    def is_complete(self) -> bool:
        if self.room_id is None or self.check_in is None or self.check_out is None:
            return False
        return self.check_out > self.check_in

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "room_id": self.room_id,
            "check_in": self.check_in.isoformat() if self.check_in else None,
            "check_out": self.check_out.isoformat() if self.check_out else None,
            "service_ids": sorted(self.service_ids),
        }
        if self.number_of_guests:
            payload["number_of_guests"] = self.number_of_guests
        return payload


@dataclass(frozen=True)
class RateQuote:
    amount: float
    query: RateQuery
    sequence: int


@dataclass
class BookingDraft:
    guest_id: int | None = None
    room_id: int | None = None
    check_in: date | None = None
    check_out: date | None = None
    number_of_guests: int | None = None
    status: str = BookingStatus.PENDING.value
    payment_status: str | None = None
    payment_method: str | None = None
    assigned_to: str | None = None
    notes: str = ""
    services: set[int] = field(default_factory=set)
    # Entered in display currency
    total_amount: float | None = None
    booking_id: int | None = None

    @property
    def is_editing(self) -> bool:
        return self.booking_id is not None

    def rate_query(self) -> RateQuery:
        return RateQuery(
            room_id=self.room_id,
            check_in=self.check_in,
            check_out=self.check_out,
            number_of_guests=self.number_of_guests,
            service_ids=frozenset(self.services),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "guest_id": self.guest_id,
            "room_id": self.room_id,
            "check_in": self.check_in.isoformat() if self.check_in else None,
            "check_out": self.check_out.isoformat() if self.check_out else None,
            "number_of_guests": self.number_of_guests,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "assigned_to": self.assigned_to,
            "notes": self.notes,
            "services": sorted(self.services),
            "total_amount": self.total_amount,
        }

    @classmethod
    def from_booking(cls, booking: dict[str, Any], *, total_in_display: float | None) -> BookingDraft:
        return cls(
            booking_id=_to_int(booking.get("id")),
            guest_id=_to_int(booking.get("guest_id")),
            room_id=_to_int(booking.get("room_id")),
            check_in=parse_date(booking.get("check_in")),
            check_out=parse_date(booking.get("check_out")),
            number_of_guests=_to_int(booking.get("number_of_guests")),
            status=booking.get("status") or BookingStatus.PENDING.value,
            payment_status=booking.get("payment_status") or None,
            payment_method=booking.get("payment_method") or None,
            assigned_to=booking.get("assigned_to") or None,
            notes=booking.get("notes") or "",
            services=set(_int_ids(booking.get("services") or [])),
            total_amount=total_in_display,
        )


def _to_int(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _int_ids(values: Iterable[Any]) -> Iterable[int]:
    for value in values:
        if isinstance(value, dict):
            value = value.get("id")
        number = _to_int(value)
        if number is not None:
            yield number


__all__ = [
    "BookingDraft",
    "BookingStatus",
    "PaymentMethod",
    "PaymentStatus",
    "RateQuery",
    "RateQuote",
    "parse_date",
]
