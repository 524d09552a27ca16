from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from minihotel.api.deps import get_context, get_session_manager
from minihotel.session.manager import DashboardContext, DashboardSessionManager

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsUpdateRequest(BaseModel):
    language: str | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    date_format: Literal["DD/MM/YYYY", "MM/DD/YYYY", "YYYY-MM-DD"] | None = None
    time_format: Literal["24h", "12h"] | None = None
    hotel_name: str | None = None
    auto_logout_enabled: bool | None = None
    auto_logout_timeout: int | None = Field(default=None, ge=1, le=1440)


@router.get("")
async def read_settings(context: DashboardContext = Depends(get_context)) -> dict[str, Any]:
    return context.settings.to_dict()


@router.put("")
async def update_settings(
    payload: SettingsUpdateRequest,
    context: DashboardContext = Depends(get_context),
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    changes = payload.model_dump(exclude_none=True)
    if "currency" in changes:
        changes["currency"] = changes["currency"].upper()
    settings = await manager.update_settings(context, changes)
    return settings.to_dict()


__all__ = ["router"]
