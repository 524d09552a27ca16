from __future__ import annotations

from typing import Any, Mapping

from minihotel.hotel_api.client import HotelAPIClient

JSON = Any


def unwrap_items(payload: Any) -> list[Any]:
    """Paginated list endpoints answer with ``{items: [...]}`` or a bare list."""

    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("items"), list):
        return payload["items"]
    return []


class HotelAPI:
    """Booking and exchange-rate endpoints of the hotel REST API, bound to one bearer token.

    Other resources (rooms, guests, catalogues, reports) reach the upstream
    unchanged through the same-origin proxy.
    """

    def __init__(self, client: HotelAPIClient, *, token: str | None = None) -> None:
        self._client = client
        self._token = token

    async def _get(self, endpoint: str, params: Mapping[str, Any] | None = None) -> JSON:
        return await self._client.fetch_api(endpoint, params=params, token=self._token)

    async def _post(self, endpoint: str, data: Any = None) -> JSON:
        return await self._client.fetch_api(
            endpoint, method="POST", json=data, token=self._token
        )

    async def _put(self, endpoint: str, data: Any) -> JSON:
        return await self._client.fetch_api(
            endpoint, method="PUT", json=data, token=self._token
        )

    async def _patch(self, endpoint: str, data: Any) -> JSON:
        return await self._client.fetch_api(
            endpoint, method="PATCH", json=data, token=self._token
        )

    async def _delete(self, endpoint: str) -> JSON:
        return await self._client.fetch_api(endpoint, method="DELETE", token=self._token)

    # ---- bookings --------------------------------------------------------

    async def get_bookings(self, params: Mapping[str, str] | None = None) -> list[Any]:
        return unwrap_items(await self._get("/bookings", params))

    async def get_booking(self, booking_id: int) -> JSON:
        return await self._get(f"/bookings/{booking_id}")

    async def create_booking(self, data: dict[str, Any]) -> JSON:
        return await self._post("/bookings", data)

    async def update_booking(self, booking_id: int, data: dict[str, Any]) -> JSON:
        return await self._put(f"/bookings/{booking_id}", data)

    async def update_booking_status(
        self, booking_id: int, status: str, payment_status: str | None = None
    ) -> JSON:
        body: dict[str, Any] = {"status": status}
        if payment_status:
            body["payment_status"] = payment_status
        return await self._patch(f"/bookings/{booking_id}/status", body)

    async def delete_booking(self, booking_id: int) -> JSON:
        return await self._delete(f"/bookings/{booking_id}")

    async def calculate_rate(self, data: dict[str, Any]) -> JSON:
        return await self._post("/bookings/calculate-rate", data)

    # ---- exchange rates --------------------------------------------------

    async def get_exchange_rates(self) -> JSON:
        return await self._get("/exchange-rates")

    async def add_exchange_rate(self, code: str) -> JSON:
        return await self._post("/exchange-rates", {"code": code})


__all__ = ["HotelAPI", "unwrap_items"]
