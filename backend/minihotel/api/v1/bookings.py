from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from minihotel.api.deps import get_context, raise_upstream_error
from minihotel.booking.models import BookingStatus, PaymentStatus
from minihotel.currency.service import format_money
from minihotel.hotel_api.client import HotelAPIError
from minihotel.session.manager import DashboardContext
from minihotel.session.formatting import display_dates

router = APIRouter(prefix="/bookings", tags=["bookings"])


class StatusUpdateRequest(BaseModel):
    status: BookingStatus
    payment_status: PaymentStatus | None = None


def _for_display(booking: Any, context: DashboardContext) -> Any:
    """Adds the total in display currency and dates in the session's format."""

    if not isinstance(booking, dict):
        return booking
    shown = {**booking, **display_dates(booking, context.settings)}
    total = booking.get("total_amount")
    if total is None:
        return shown
    try:
        amount = context.currency.convert(float(total))
    except (TypeError, ValueError):
        return shown
    shown["display_total"] = format_money(amount, context.currency.display_currency)
    return shown


@router.get("")
async def list_bookings(
    booking_status: str | None = Query(None, alias="status"),
    room_id: str | None = Query(None),
    guest_id: str | None = Query(None),
    page: int | None = Query(None, ge=1),
    context: DashboardContext = Depends(get_context),
) -> list[Any]:
    params = {
        "status": booking_status,
        "room_id": room_id,
        "guest_id": guest_id,
        "page": str(page) if page else None,
    }
    try:
        bookings = await context.api.get_bookings(
            {key: value for key, value in params.items() if value is not None}
        )
    except HotelAPIError as exc:
        raise_upstream_error(exc)
    return [_for_display(booking, context) for booking in bookings]


@router.patch("/{booking_id}/status")
async def update_status(
    booking_id: int,
    payload: StatusUpdateRequest,
    context: DashboardContext = Depends(get_context),
) -> Any:
    try:
        booking = await context.api.update_booking_status(
            booking_id,
            payload.status.value,
            payload.payment_status.value if payload.payment_status else None,
        )
    except HotelAPIError as exc:
        raise_upstream_error(exc)
    return _for_display(booking, context)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int, context: DashboardContext = Depends(get_context)
) -> Response:
    try:
        await context.api.delete_booking(booking_id)
    except HotelAPIError as exc:
        raise_upstream_error(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
