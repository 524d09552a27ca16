from __future__ import annotations

from fastapi import APIRouter, Depends

from minihotel.api.deps import get_session_manager
from minihotel.session.manager import DashboardSessionManager

router = APIRouter(prefix="/admin")


@router.get("/health")
async def health(
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> dict[str, bool]:
    return {"ok": True, "session_store": await manager.store.ping()}
