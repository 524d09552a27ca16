from __future__ import annotations

import logging
from typing import NoReturn
from urllib.parse import quote

from fastapi import Depends, HTTPException, status

from minihotel.core.security import TOKEN_COOKIE, require_token
from minihotel.hotel_api.client import (
    HotelAPIAuthenticationError,
    HotelAPIError,
    HotelAPIUnavailableError,
)
from minihotel.session.manager import DashboardContext, DashboardSessionManager, SessionExpiredError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong, please try again"
CLEARED_TOKEN_COOKIE = f'{TOKEN_COOKIE}=""; Max-Age=0; Path=/; HttpOnly; SameSite=lax'


def get_session_manager() -> DashboardSessionManager:  # pragma: no cover - overridden in main
    raise RuntimeError("Session manager dependency is not configured")


def login_redirect(reason: str | None = None) -> str:
    if not reason:
        return "/login"
    return f"/login?error={quote(reason)}"


def unauthorized(reason: str) -> HTTPException:
    # every dashboard 401 also drops the token cookie
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": reason, "redirect": login_redirect(reason)},
        headers={"Set-Cookie": CLEARED_TOKEN_COOKIE},
    )


async def get_context(
    token: str = Depends(require_token),
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> DashboardContext:
    try:
        return await manager.load(token)
    except SessionExpiredError as exc:
        raise unauthorized(exc.reason) from exc


def raise_upstream_error(exc: HotelAPIError) -> NoReturn:
    if isinstance(exc, HotelAPIAuthenticationError):
        raise unauthorized(exc.message or "Session expired") from exc
    if isinstance(exc, HotelAPIUnavailableError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail={"message": exc.message}
        ) from exc
    code = exc.status_code or status.HTTP_502_BAD_GATEWAY
    if code >= 500:
        code = status.HTTP_502_BAD_GATEWAY
    raise HTTPException(
        status_code=code, detail={"message": exc.message or GENERIC_ERROR_MESSAGE}
    ) from exc


__all__ = [
    "get_context",
    "get_session_manager",
    "login_redirect",
    "raise_upstream_error",
    "unauthorized",
]
