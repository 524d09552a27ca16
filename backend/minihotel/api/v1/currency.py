from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from minihotel.api.deps import get_context, get_session_manager, raise_upstream_error
from minihotel.currency.service import CurrencyCodeError, format_money
from minihotel.hotel_api.client import HotelAPIError
from minihotel.session.manager import DashboardContext, DashboardSessionManager

router = APIRouter(prefix="/currency", tags=["currency"])


class TrackCurrencyRequest(BaseModel):
    code: str


@router.get("/rates")
async def current_rates(context: DashboardContext = Depends(get_context)) -> dict[str, Any]:
    currency = context.currency
    return {
        "base_currency": currency.base_currency,
        "display_currency": currency.display_currency,
        "rates": currency.table.as_dict(),
        "last_updated": currency.last_updated,
    }


@router.get("/convert")
async def convert_amount(
    amount: float = Query(...),
    from_currency: str | None = Query(None, alias="from"),
    to_base: bool = Query(False, description="Convert into the base currency instead"),
    context: DashboardContext = Depends(get_context),
) -> dict[str, Any]:
    currency = context.currency
    if to_base:
        value = currency.convert_to_base(amount, from_currency)
        target = currency.base_currency
    else:
        value = currency.convert(amount, from_currency)
        target = currency.display_currency
    return {"amount": value, "currency": target, "formatted": format_money(value, target)}


@router.post("/track", status_code=status.HTTP_201_CREATED)
async def track_currency(
    payload: TrackCurrencyRequest,
    context: DashboardContext = Depends(get_context),
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    try:
        entry = await context.currency.add_tracked_currency(payload.code)
    except CurrencyCodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail={"message": str(exc)}
        ) from exc
    except HotelAPIError as exc:
        raise_upstream_error(exc)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail={"message": str(exc)}
        ) from exc

    settings = await manager.update_settings(context, {"currency": entry.code})
    return {"code": entry.code, "rate": entry.rate, "display_currency": settings.currency}


__all__ = ["router"]
