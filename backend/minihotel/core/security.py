from __future__ import annotations

from fastapi import Cookie, Header, HTTPException, Request, status

TOKEN_COOKIE = "token"


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, value = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


async def optional_token(
    request: Request,
    authorization: str | None = Header(default=None),
    token: str | None = Cookie(default=None),
) -> str | None:
    # Preflight requests are answered by the CORS layer
    if request.method == "OPTIONS":
        return None
    # An explicit header wins over the cookie set by the login proxy
    return extract_bearer_token(authorization) or (token or None)


async def require_token(
    request: Request,
    authorization: str | None = Header(default=None),
    token: str | None = Cookie(default=None),
) -> str:
    value = await optional_token(request, authorization, token)
    if not value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Not authenticated", "redirect": "/login"},
        )
    return value


__all__ = ["TOKEN_COOKIE", "extract_bearer_token", "optional_token", "require_token"]
