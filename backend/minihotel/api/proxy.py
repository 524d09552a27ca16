"""Same-origin passthrough to the hotel REST API."""

from __future__ import annotations

from typing import Any

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger

from minihotel.api.deps import get_session_manager
from minihotel.core.security import TOKEN_COOKIE, extract_bearer_token
from minihotel.hotel_api.client import LOGIN_ENDPOINT
from minihotel.session.manager import DashboardSessionManager

LOGOUT_ENDPOINT = "/auth/logout"
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
PROXY_ERROR = {"error": "Failed to communicate with backend API"}

router = APIRouter(tags=["proxy"])


def _request_token(request: Request) -> str | None:
    return extract_bearer_token(request.headers.get("authorization")) or (
        request.cookies.get(TOKEN_COOKIE) or None
    )


def _forward_headers(request: Request) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    cookie_token = request.cookies.get(TOKEN_COOKIE)
    if cookie_token:
        headers["Authorization"] = f"Bearer {cookie_token}"
    auth_header = request.headers.get("authorization")
    if auth_header:
        headers["Authorization"] = auth_header
    return headers


def _login_identity(data: dict[str, Any]) -> tuple[int | None, str | None]:
    user = data.get("user") if isinstance(data.get("user"), dict) else {}
    user_id = data.get("user_id", user.get("id"))
    username = data.get("username", user.get("username"))
    try:
        user_id = int(user_id) if user_id is not None else None
    except (TypeError, ValueError):
        user_id = None
    return user_id, username


@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy(
    path: str,
    request: Request,
    manager: DashboardSessionManager = Depends(get_session_manager),
) -> Response:
    endpoint = f"/{path}"
    method = request.method.upper()

    if endpoint == LOGOUT_ENDPOINT and method == "POST":
        await manager.teardown(_request_token(request), reason="logout")
        response = JSONResponse({"message": "Logged out"})
        response.delete_cookie(TOKEN_COOKIE, path="/")
        return response

    body = await request.body() if method not in ("GET", "DELETE") else None
    try:
        upstream = await manager.client.forward(
            method,
            endpoint,
            query=request.url.query,
            body=body,
            headers=_forward_headers(request),
        )
        data = upstream.json() if upstream.content else None
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Proxy error for {method} {endpoint}: {error}", method=method, endpoint=endpoint, error=exc)
        return JSONResponse(PROXY_ERROR, status_code=500)

    if data is None:
        return Response(status_code=upstream.status_code)
    response = JSONResponse(data, status_code=upstream.status_code)

    if endpoint == LOGIN_ENDPOINT and method == "POST":
        token = data.get("token") if isinstance(data, dict) else None
        if upstream.is_success and token:
            user_id, username = _login_identity(data)
            await manager.open(token, user_id=user_id, username=username)
            response.set_cookie(
                key=TOKEN_COOKIE, value=token, httponly=True, path="/", samesite="lax"
            )
    elif upstream.status_code == 401:
        await manager.teardown(_request_token(request), reason="unauthorized")
        response.delete_cookie(TOKEN_COOKIE, path="/")

    return response


__all__ = ["router"]
