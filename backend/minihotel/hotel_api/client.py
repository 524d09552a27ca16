from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping
from urllib.parse import urlencode

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from minihotel.core.config import get_settings

logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "/auth/login"
IDEMPOTENT_METHODS = frozenset({"GET", "PUT", "DELETE"})

UnauthorizedCallback = Callable[[str | None, str], Awaitable[None]]


class HotelAPIError(RuntimeError):
    """Upstream hotel API answered with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class HotelAPIAuthenticationError(HotelAPIError):
    """Upstream rejected the credentials (HTTP 401)."""


class HotelAPIUnavailableError(HotelAPIError):
    """Upstream could not be reached at all."""


def build_query(params: Mapping[str, Any] | None) -> str:
    if not params:
        return ""
    pairs = [(key, str(value)) for key, value in params.items() if value is not None]
    return urlencode(pairs)


class HotelAPIClient:
    """Async JSON transport to the hotel REST API."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        retry_attempts: int | None = None,
        on_unauthorized: UnauthorizedCallback | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.hotel_api_base).rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout)
        )
        self._retry_attempts = max(1, retry_attempts or settings.http_retry_attempts)
        self._on_unauthorized = on_unauthorized

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_unauthorized_handler(self, callback: UnauthorizedCallback | None) -> None:
        self._on_unauthorized = callback

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_api(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        json: Any = None,
        params: Mapping[str, Any] | None = None,
        token: str | None = None,
    ) -> Any:
        method = method.upper()
        url = f"{self._base_url}{endpoint}"
        query = build_query(params)
        if query:
            url = f"{url}?{query}"

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        response = await self._send(method, url, headers=headers, json=json)

        if response.status_code == 401:
            message = self._error_message(response)
            if endpoint != LOGIN_ENDPOINT and self._on_unauthorized is not None:
                await self._on_unauthorized(token, message)
            raise HotelAPIAuthenticationError(
                message, status_code=401, payload=self._safe_json(response)
            )
        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error(
                "Hotel API %s %s failed: status=%s, message=%s",
                method,
                endpoint,
                response.status_code,
                message,
            )
            raise HotelAPIError(
                message,
                status_code=response.status_code,
                payload=self._safe_json(response),
            )
        return self._safe_json(response)

    async def forward(
        self,
        method: str,
        endpoint: str,
        *,
        query: str = "",
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Relay a request verbatim; status handling is left to the caller."""

        url = f"{self._base_url}{endpoint}"
        if query:
            url = f"{url}?{query}"
        return await self._client.request(method, url, content=body, headers=headers)

    async def _send(
        self, method: str, url: str, *, headers: dict[str, str], json: Any
    ) -> httpx.Response:
        # POST/PATCH are not retried, a lost response could still have created a booking
        attempts = self._retry_attempts if method in IDEMPOTENT_METHODS else 1
        try:
            async for attempt in AsyncRetrying(
                reraise=True,
                stop=stop_after_attempt(attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type(httpx.TransportError),
            ):
                with attempt:
                    return await self._client.request(
                        method,
                        url,
                        headers=headers,
                        json=json if method not in ("GET", "DELETE") else None,
                    )
        except httpx.HTTPError as exc:
            logger.error("Hotel API unreachable: %s %s: %s", method, url, exc)
            raise HotelAPIUnavailableError(
                "Failed to communicate with backend API"
            ) from exc
        raise HotelAPIUnavailableError("Failed to communicate with backend API")

    @staticmethod
    def _safe_json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    @classmethod
    def _error_message(cls, response: httpx.Response) -> str:
        payload = cls._safe_json(response)
        if isinstance(payload, dict):
            for key in ("error", "message", "detail"):
                value = payload.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        return f"API Error: {response.reason_phrase or response.status_code}"


__all__ = [
    "HotelAPIClient",
    "HotelAPIError",
    "HotelAPIAuthenticationError",
    "HotelAPIUnavailableError",
    "build_query",
]
