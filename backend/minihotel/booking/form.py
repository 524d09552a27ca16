from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

from minihotel.booking.models import (
    BookingDraft,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    parse_date,
)
from minihotel.booking.orchestrator import RateCalculationOrchestrator, RateState
from minihotel.currency.service import CurrencyService
from minihotel.hotel_api.resources import HotelAPI

logger = logging.getLogger(__name__)

RATE_FIELDS = frozenset({"room_id", "check_in", "check_out", "number_of_guests", "services"})
EDITABLE_FIELDS = frozenset(
    {
        "guest_id",
        "room_id",
        "check_in",
        "check_out",
        "number_of_guests",
        "status",
        "payment_status",
        "payment_method",
        "assigned_to",
        "notes",
        "services",
        "total_amount",
    }
)
BOOKING_STATUSES = frozenset(item.value for item in BookingStatus)
PAYMENT_STATUSES = frozenset(item.value for item in PaymentStatus)
PAYMENT_METHODS = frozenset(item.value for item in PaymentMethod)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class BookingValidationError(ValueError):
    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__("; ".join(error.message for error in errors))
        self.errors = errors

    def as_list(self) -> list[dict[str, str]]:
        return [{"field": error.field, "message": error.message} for error in self.errors]


class BookingForm:
    """Working state of one open create/edit booking dialog."""

    def __init__(
        self,
        draft: BookingDraft,
        *,
        api: HotelAPI,
        currency: CurrencyService,
        debounce_seconds: float = 0.0,
        form_id: str | None = None,
    ) -> None:
        self.form_id = form_id or uuid.uuid4().hex
        self.draft = draft
        self.touched_at = time.time()
        self._api = api
        self._currency = currency
        self.orchestrator = RateCalculationOrchestrator(
            self._calculate, debounce_seconds=debounce_seconds
        )

    @property
    def currency(self) -> CurrencyService:
        return self._currency

    def touch(self, now: float | None = None) -> None:
        self.touched_at = time.time() if now is None else now

    async def _calculate(self, query) -> Any:
        return await self._api.calculate_rate(query.to_payload())

    def update(self, **changes: Any) -> RateState:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise KeyError(f"unknown booking form fields: {', '.join(sorted(unknown))}")

        for name, value in changes.items():
            if name in ("check_in", "check_out"):
                value = parse_date(value)
            elif name == "services":
                value = {int(item) for item in value or ()}
            elif name == "notes":
                value = value or ""
            elif name == "total_amount":
                value = None if value in (None, "") else float(value)
            elif name in ("payment_status", "payment_method", "assigned_to"):
                value = value or None
            setattr(self.draft, name, value)

        if RATE_FIELDS & set(changes):
            return self.orchestrator.update(self.draft.rate_query())
        return self.orchestrator.state

    def validate(self) -> None:
        draft = self.draft
        errors: list[FieldError] = []
        if draft.guest_id is None:
            errors.append(FieldError("guest_id", "Guest is required"))
        if draft.room_id is None:
            errors.append(FieldError("room_id", "Room is required"))
        if draft.check_in is None:
            errors.append(FieldError("check_in", "Check-in date is required"))
        if draft.check_out is None:
            errors.append(FieldError("check_out", "Check-out date is required"))
        if draft.check_in and draft.check_out and draft.check_out <= draft.check_in:
            errors.append(
                FieldError("check_out", "Check-out date must be after check-in date")
            )
        if draft.number_of_guests is None:
            errors.append(FieldError("number_of_guests", "Number of guests is required"))
        elif draft.number_of_guests < 1:
            errors.append(
                FieldError("number_of_guests", "Number of guests must be at least 1")
            )
        if not draft.status:
            errors.append(FieldError("status", "Booking status is required"))
        elif draft.status not in BOOKING_STATUSES:
            errors.append(FieldError("status", f"Unknown booking status: {draft.status}"))
        if draft.payment_status and draft.payment_status not in PAYMENT_STATUSES:
            errors.append(
                FieldError("payment_status", f"Unknown payment status: {draft.payment_status}")
            )
        if draft.payment_method and draft.payment_method not in PAYMENT_METHODS:
            errors.append(
                FieldError("payment_method", f"Unknown payment method: {draft.payment_method}")
            )
        if draft.total_amount is not None and draft.total_amount < 0:
            errors.append(FieldError("total_amount", "Total amount cannot be negative"))
        if errors:
            raise BookingValidationError(errors)

    def build_payload(self) -> dict[str, Any]:
        self.validate()
        draft = self.draft
        payload: dict[str, Any] = {
            "guest_id": draft.guest_id,
            "room_id": draft.room_id,
            "check_in": draft.check_in.isoformat(),
            "check_out": draft.check_out.isoformat(),
            "number_of_guests": draft.number_of_guests,
            "status": draft.status,
            "notes": draft.notes,
        }
        if draft.total_amount is not None:
            payload["total_amount"] = self._currency.convert_to_base(draft.total_amount)
        if draft.payment_status:
            payload["payment_status"] = draft.payment_status
        if draft.payment_method:
            payload["payment_method"] = draft.payment_method
        if draft.assigned_to:
            payload["assigned_to"] = draft.assigned_to
        if draft.is_editing:
            payload["id"] = draft.booking_id
        else:
            payload["services"] = sorted(draft.services)
        return payload

    async def submit(self) -> Any:
        payload = self.build_payload()
        if self.draft.is_editing:
            body = {key: value for key, value in payload.items() if key != "id"}
            result = await self._api.update_booking(self.draft.booking_id, body)
        else:
            result = await self._api.create_booking(payload)
        logger.info(
            "Booking %s submitted (room=%s, %s..%s)",
            "update" if self.draft.is_editing else "create",
            self.draft.room_id,
            self.draft.check_in,
            self.draft.check_out,
        )
        return result

    def snapshot(self) -> dict[str, Any]:
        quote = self.orchestrator.quote
        errors: list[dict[str, str]] = []
        try:
            self.validate()
        except BookingValidationError as exc:
            errors = exc.as_list()

        quoted: dict[str, Any] | None = None
        if quote is not None:
            display_amount = self._currency.convert(quote.amount)
            quoted = {
                "amount": quote.amount,
                "currency": self._currency.base_currency,
                "display_amount": round(display_amount, 2),
                "display_currency": self._currency.display_currency,
                "sequence": quote.sequence,
            }
        return {
            "form_id": self.form_id,
            "mode": "edit" if self.draft.is_editing else "create",
            "rate_state": self.orchestrator.state.value,
            "quote": quoted,
            "draft": self.draft.to_dict(),
            "errors": errors,
        }

    def close(self) -> None:
        self.orchestrator.close()


class BookingFormRegistry:
    """Open booking forms, keyed by form id."""

    def __init__(self) -> None:
        self._forms: dict[str, BookingForm] = {}
        self._owners: dict[str, str] = {}

    def add(self, form: BookingForm, *, owner: str) -> BookingForm:
        form.touch()
        self._forms[form.form_id] = form
        self._owners[form.form_id] = owner
        return form

    def get(self, form_id: str, *, owner: str) -> BookingForm | None:
        if self._owners.get(form_id) != owner:
            return None
        form = self._forms.get(form_id)
        if form is not None:
            form.touch()
        return form

    def discard(self, form_id: str) -> None:
        form = self._forms.pop(form_id, None)
        self._owners.pop(form_id, None)
        if form is not None:
            form.close()

    def discard_owner(self, owner: str) -> int:
        form_ids = [form_id for form_id, value in self._owners.items() if value == owner]
        for form_id in form_ids:
            self.discard(form_id)
        return len(form_ids)

    def evict_idle(self, max_idle_seconds: float, *, now: float | None = None) -> int:
        """Discards forms nobody has read or changed for ``max_idle_seconds``."""

        now = time.time() if now is None else now
        stale = [
            form_id
            for form_id, form in self._forms.items()
            if now - form.touched_at > max_idle_seconds
        ]
        for form_id in stale:
            self.discard(form_id)
        return len(stale)

    def clear(self) -> None:
        for form_id in list(self._forms):
            self.discard(form_id)

    def __len__(self) -> int:
        return len(self._forms)


__all__ = [
    "BookingForm",
    "BookingFormRegistry",
    "BookingValidationError",
    "FieldError",
]
