import asyncio

import httpx
import pytest

from _helpers import BASE_URL, RecordingTransport, make_api, make_client, request_json
from minihotel.hotel_api.client import (
    HotelAPIAuthenticationError,
    HotelAPIClient,
    HotelAPIError,
    HotelAPIUnavailableError,
    build_query,
)
from minihotel.hotel_api.resources import HotelAPI, unwrap_items


def test_build_query_keeps_order_and_skips_empty_values():
    assert build_query({"status": "confirmed", "room_id": "101"}) == "status=confirmed&room_id=101"
    assert build_query({"status": None, "page": 2}) == "page=2"
    assert build_query({"q": "Novák & syn"}) == "q=Nov%C3%A1k+%26+syn"
    assert build_query(None) == ""


@pytest.mark.parametrize(
    "payload,expected",
    [
        ([{"id": 1}], [{"id": 1}]),
        ({"items": [{"id": 2}], "total": 1, "page": 1}, [{"id": 2}]),
        ({"unexpected": True}, []),
        (None, []),
    ],
)
def test_unwrap_items(payload, expected):
    assert unwrap_items(payload) == expected


@pytest.mark.parametrize(
    "payload",
    [
        [{"id": 1, "status": "confirmed"}],
        {"items": [{"id": 1, "status": "confirmed"}], "total": 1, "page": 1, "per_page": 20},
    ],
)
def test_get_bookings_returns_plain_list(payload):
    transport = RecordingTransport({("GET", "/bookings"): (200, payload)})

    bookings = asyncio.run(make_api(transport).get_bookings({"status": "confirmed", "room_id": "101"}))

    assert bookings == [{"id": 1, "status": "confirmed"}]
    [request] = transport.requests
    assert str(request.url) == f"{BASE_URL}/bookings?status=confirmed&room_id=101"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["Content-Type"] == "application/json"


def test_get_bookings_without_list_is_empty():
    transport = RecordingTransport({("GET", "/bookings"): (200, {"message": "ok"})})

    assert asyncio.run(make_api(transport).get_bookings()) == []


def test_request_without_token_sends_no_authorization():
    transport = RecordingTransport({("GET", "/exchange-rates"): (200, {"rates": {}})})

    asyncio.run(make_api(transport, token=None).get_exchange_rates())

    assert "Authorization" not in transport.requests[0].headers


def test_empty_body_yields_none():
    transport = RecordingTransport({("DELETE", "/bookings/5"): (204, None)})

    assert asyncio.run(make_api(transport).delete_booking(5)) is None


@pytest.mark.parametrize(
    "status,payload,message",
    [
        (400, {"error": "Invalid dates"}, "Invalid dates"),
        (404, {"message": "Booking not found"}, "Booking not found"),
        (422, {"detail": "Bad guest"}, "Bad guest"),
        (500, {"unexpected": 1}, "API Error: Internal Server Error"),
    ],
)
def test_error_message_is_taken_from_payload(status, payload, message):
    transport = RecordingTransport({("GET", "/bookings/5"): (status, payload)})

    with pytest.raises(HotelAPIError) as exc_info:
        asyncio.run(make_api(transport).get_booking(5))

    assert exc_info.value.message == message
    assert exc_info.value.status_code == status


def test_unauthorized_response_notifies_handler():
    transport = RecordingTransport({("GET", "/bookings"): (401, {"error": "Token expired"})})
    notified = []

    async def on_unauthorized(token, message):
        notified.append((token, message))

    client = make_client(transport, on_unauthorized=on_unauthorized)

    with pytest.raises(HotelAPIAuthenticationError):
        asyncio.run(HotelAPI(client, token="stale").get_bookings())

    assert notified == [("stale", "Token expired")]


def test_failed_login_does_not_notify_handler():
    transport = RecordingTransport({("POST", "/auth/login"): (401, {"error": "Invalid credentials"})})
    notified = []

    async def on_unauthorized(token, message):
        notified.append(message)

    client = make_client(transport, on_unauthorized=on_unauthorized)

    with pytest.raises(HotelAPIAuthenticationError) as exc_info:
        asyncio.run(client.fetch_api("/auth/login", method="POST", json={"username": "a", "password": "b"}))

    assert exc_info.value.message == "Invalid credentials"
    assert notified == []


def test_network_failure_is_retried_for_reads_only():
    attempts = {"GET": 0, "POST": 0}

    def handler(request):
        attempts[request.method] += 1
        raise httpx.ConnectError("connection refused", request=request)

    client = HotelAPIClient(
        base_url=BASE_URL,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        retry_attempts=2,
    )
    api = HotelAPI(client)

    with pytest.raises(HotelAPIUnavailableError) as exc_info:
        asyncio.run(api.get_exchange_rates())
    assert exc_info.value.message == "Failed to communicate with backend API"

    with pytest.raises(HotelAPIUnavailableError):
        asyncio.run(api.create_booking({"room_id": 1}))

    assert attempts == {"GET": 2, "POST": 1}


def test_redirect_loop_is_reported_as_unavailable():
    def handler(request):
        raise httpx.TooManyRedirects("Exceeded maximum allowed redirects", request=request)

    client = HotelAPIClient(
        base_url=BASE_URL,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        retry_attempts=3,
    )

    with pytest.raises(HotelAPIUnavailableError) as exc_info:
        asyncio.run(HotelAPI(client).get_bookings())

    assert exc_info.value.message == "Failed to communicate with backend API"


def test_endpoint_catalogue_paths():
    transport = RecordingTransport(
        {
            ("PUT", "/bookings/9"): (200, {"id": 9}),
            ("PATCH", "/bookings/9/status"): (200, {"id": 9}),
            ("POST", "/bookings/calculate-rate"): (200, {"total_amount": 100}),
            ("POST", "/exchange-rates"): (201, {"code": "GBP"}),
        }
    )
    api = make_api(transport)

    async def scenario():
        await api.update_booking(9, {"notes": "late arrival"})
        await api.update_booking_status(9, "checked-in", "paid")
        await api.calculate_rate({"room_id": 101})
        await api.add_exchange_rate("GBP")

    asyncio.run(scenario())

    assert [(request.method, str(request.url)) for request in transport.requests] == [
        ("PUT", f"{BASE_URL}/bookings/9"),
        ("PATCH", f"{BASE_URL}/bookings/9/status"),
        ("POST", f"{BASE_URL}/bookings/calculate-rate"),
        ("POST", f"{BASE_URL}/exchange-rates"),
    ]
    assert request_json(transport.requests[0]) == {"notes": "late arrival"}
    assert request_json(transport.requests[1]) == {"status": "checked-in", "payment_status": "paid"}
    assert request_json(transport.requests[3]) == {"code": "GBP"}
