from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from minihotel.api.deps import get_context, get_session_manager, raise_upstream_error
from minihotel.booking.form import BookingForm, BookingValidationError
from minihotel.booking.models import BookingDraft
from minihotel.core.config import get_settings
from minihotel.hotel_api.client import HotelAPIError
from minihotel.session.formatting import display_dates
from minihotel.session.manager import DashboardContext, DashboardSessionManager

router = APIRouter(prefix="/booking-forms", tags=["booking-forms"])


class OpenFormRequest(BaseModel):
    booking_id: int | None = None


class FormUpdateRequest(BaseModel):
    guest_id: int | None = None
    room_id: int | None = None
    check_in: date | None = None
    check_out: date | None = None
    number_of_guests: int | None = None
    status: str | None = None
    payment_status: str | None = None
    payment_method: str | None = None
    assigned_to: str | None = None
    notes: str | None = None
    services: list[int] | None = None
    total_amount: float | None = Field(default=None, description="Display currency")


def _snapshot(form: BookingForm, context: DashboardContext) -> dict[str, Any]:
    snapshot = form.snapshot()
    snapshot["display"] = display_dates(snapshot["draft"], context.settings)
    return snapshot


def _display_total(booking: dict[str, Any], context: DashboardContext) -> float | None:
    total = booking.get("total_amount")
    if total is None:
        return None
    try:
        return round(context.currency.convert(float(total)), 2)
    except (TypeError, ValueError):
        return None


def _get_form(
    form_id: str, context: DashboardContext, manager: DashboardSessionManager
) -> BookingForm:
    form = manager.forms.get(form_id, owner=context.owner)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking form not found")
    return form


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_form(
    payload: OpenFormRequest,
    context: DashboardContext = Depends(get_context),
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    draft = BookingDraft()
    if payload.booking_id is not None:
        try:
            booking = await context.api.get_booking(payload.booking_id)
        except HotelAPIError as exc:
            raise_upstream_error(exc)
        if not isinstance(booking, dict):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
        draft = BookingDraft.from_booking(booking, total_in_display=_display_total(booking, context))

    form = BookingForm(
        draft,
        api=context.api,
        currency=context.currency,
        debounce_seconds=get_settings().rate_debounce_seconds,
    )
    manager.forms.add(form, owner=context.owner)
    return _snapshot(form, context)


@router.get("/{form_id}")
async def read_form(
    form_id: str,
    wait: bool = Query(False, description="Wait for the pending rate calculation"),
    context: DashboardContext = Depends(get_context),
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    form = _get_form(form_id, context, manager)
    if wait:
        await form.orchestrator.wait()
    return _snapshot(form, context)


@router.patch("/{form_id}")
async def update_form(
    form_id: str,
    payload: FormUpdateRequest,
    wait: bool = Query(False, description="Wait for the rate calculation this change triggers"),
    context: DashboardContext = Depends(get_context),
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    form = _get_form(form_id, context, manager)
    form.update(**payload.model_dump(exclude_unset=True))
    if wait:
        await form.orchestrator.wait()
    return _snapshot(form, context)


@router.post("/{form_id}/submit")
async def submit_form(
    form_id: str,
    context: DashboardContext = Depends(get_context),
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    form = _get_form(form_id, context, manager)
    try:
        booking = await form.submit()
    except BookingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "errors": exc.as_list()},
        ) from exc
    except HotelAPIError as exc:
        # the form stays open so nothing typed is lost
        raise_upstream_error(exc)
    manager.forms.discard(form_id)
    return {"booking": booking}


@router.delete("/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_form(
    form_id: str,
    context: DashboardContext = Depends(get_context),
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> Response:
    _get_form(form_id, context, manager)
    manager.forms.discard(form_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
