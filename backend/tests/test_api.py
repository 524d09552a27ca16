import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from _helpers import RecordingTransport, make_client, request_json
from minihotel.booking.form import BookingFormRegistry
from minihotel.currency.rates import ExchangeRateTable
from minihotel.currency.service import CurrencyService
from minihotel.main import create_app
from minihotel.session.manager import DashboardSessionManager
from minihotel.session.store import InMemoryDashboardSessionStore

LOGIN_RESPONSE = {"token": "tok-1", "user": {"id": 1, "username": "reception"}}


def _routes():
    return {
        ("POST", "/auth/login"): (200, LOGIN_RESPONSE),
        ("GET", "/exchange-rates"): (
            200,
            {"rates": {"CZK": 1, "EUR": 0.04, "USD": 0.044}, "last_updated": "2025-06-01"},
        ),
        ("GET", "/rooms"): (200, [{"id": 101, "number": "101"}]),
        ("GET", "/bookings"): (
            200,
            {
                "items": [
                    {
                        "id": 1,
                        "status": "confirmed",
                        "total_amount": 4000,
                        "check_in": "2025-06-01",
                        "check_out": "2025-06-05",
                        "created_at": "2025-05-20T09:15:00Z",
                    }
                ],
                "total": 1,
            },
        ),
        ("POST", "/bookings/calculate-rate"): (200, {"total_amount": 4000}),
        ("POST", "/bookings"): (201, {"id": 77, "status": "pending"}),
    }


@pytest.fixture
def transport():
    return RecordingTransport(_routes())


@pytest.fixture
def manager(transport):
    return DashboardSessionManager(
        store=InMemoryDashboardSessionStore(),
        client=make_client(transport),
        currency=CurrencyService(ExchangeRateTable(), display_currency="CZK"),
        forms=BookingFormRegistry(),
    )


@pytest.fixture
def client(manager):
    with TestClient(create_app(manager)) as test_client:
        yield test_client


def _login(client):
    response = client.post("/api/auth/login", json={"username": "reception", "password": "pw"})
    assert response.status_code == 200
    return response


def test_login_sets_cookie_and_opens_session(client, manager, transport):
    response = _login(client)

    assert response.json() == LOGIN_RESPONSE
    set_cookie = response.headers["set-cookie"]
    assert "token=tok-1" in set_cookie
    assert "HttpOnly" in set_cookie
    assert "Path=/" in set_cookie
    assert request_json(transport.calls("POST", "/auth/login")[0]) == {
        "username": "reception",
        "password": "pw",
    }
    session = asyncio.run(manager.store.get("tok-1"))
    assert session.username == "reception"
    assert manager.currency.table.get("EUR") == 0.04


def test_proxy_forwards_query_and_cookie_token(client, transport):
    _login(client)

    response = client.get("/api/rooms", params={"floor": "2"})

    assert response.status_code == 200
    assert response.json() == [{"id": 101, "number": "101"}]
    [request] = transport.calls("GET", "/rooms")
    assert request.url.query == b"floor=2"
    assert request.headers["Authorization"] == "Bearer tok-1"


def test_proxy_relays_upstream_errors(client):
    response = client.get("/api/unknown")

    assert response.status_code == 404
    assert response.json() == {"error": "No route for GET /unknown"}


def test_proxy_reports_unreachable_backend(client, transport):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport.routes[("GET", "/guests")] = refuse

    response = client.get("/api/guests")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to communicate with backend API"}


def test_logout_is_answered_locally(client, manager, transport):
    _login(client)

    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out"}
    assert 'token=""' in response.headers["set-cookie"]
    assert transport.calls("POST", "/auth/logout") == []
    assert asyncio.run(manager.store.get("tok-1")) is None


def test_dashboard_endpoints_require_token(client):
    response = client.get("/v1/settings")

    assert response.status_code == 401
    assert response.json()["detail"] == {"message": "Not authenticated", "redirect": "/login"}


def test_settings_update_switches_display_currency(client):
    _login(client)

    response = client.put("/v1/settings", json={"currency": "eur", "time_format": "12h"})

    assert response.status_code == 200
    assert response.json()["currency"] == "EUR"
    assert response.json()["time_format"] == "12h"
    converted = client.get("/v1/currency/convert", params={"amount": 1000}).json()
    assert converted == {"amount": 40.0, "currency": "EUR", "formatted": "40.00 EUR"}


def test_settings_reject_unknown_date_format(client):
    _login(client)

    response = client.put("/v1/settings", json={"date_format": "YYYY/DD/MM"})

    assert response.status_code == 422


def test_tracking_bad_currency_code_is_rejected(client, transport):
    _login(client)

    response = client.post("/v1/currency/track", json={"code": "EURO"})

    assert response.status_code == 422
    assert response.json()["detail"] == {"message": "Currency code must be exactly 3 characters"}
    assert transport.calls("POST", "/exchange-rates") == []


def test_bookings_list_is_unwrapped_with_display_values(client, transport):
    _login(client)
    client.put("/v1/settings", json={"date_format": "MM/DD/YYYY", "time_format": "12h"})

    response = client.get("/v1/bookings", params={"status": "confirmed", "room_id": "101"})

    assert response.status_code == 200
    assert response.json() == [
        {
            "id": 1,
            "status": "confirmed",
            "total_amount": 4000,
            "check_in": "2025-06-01",
            "check_out": "2025-06-05",
            "created_at": "2025-05-20T09:15:00Z",
            "display_check_in": "06/01/2025",
            "display_check_out": "06/05/2025",
            "display_created_at": "05/20/2025 9:15 AM",
            "display_total": "4000.00 CZK",
        }
    ]
    [request] = transport.calls("GET", "/bookings")
    assert request.url.query == b"status=confirmed&room_id=101"


def test_booking_form_flow(client, manager, transport):
    _login(client)
    client.put("/v1/settings", json={"currency": "EUR", "date_format": "YYYY-MM-DD"})

    opened = client.post("/v1/booking-forms", json={})
    assert opened.status_code == 201
    form_id = opened.json()["form_id"]
    assert opened.json()["rate_state"] == "idle"

    updated = client.patch(
        f"/v1/booking-forms/{form_id}",
        params={"wait": "true"},
        json={
            "guest_id": 7,
            "room_id": 101,
            "check_in": "2025-06-01",
            "check_out": "2025-06-05",
            "number_of_guests": 2,
            "total_amount": 160,
        },
    )
    snapshot = updated.json()
    assert snapshot["rate_state"] == "quoted"
    assert snapshot["quote"]["amount"] == 4000.0
    assert snapshot["quote"]["display_amount"] == 160.0
    assert snapshot["quote"]["display_currency"] == "EUR"
    assert snapshot["errors"] == []
    assert snapshot["display"] == {"display_check_in": "2025-06-01", "display_check_out": "2025-06-05"}

    submitted = client.post(f"/v1/booking-forms/{form_id}/submit")
    assert submitted.status_code == 200
    assert submitted.json() == {"booking": {"id": 77, "status": "pending"}}
    body = request_json(transport.calls("POST", "/bookings")[0])
    assert body["total_amount"] == pytest.approx(4000.0)
    assert body["services"] == []

    assert client.get(f"/v1/booking-forms/{form_id}").status_code == 404
    assert len(manager.forms) == 0


def test_booking_form_submit_reports_validation_errors(client, transport):
    _login(client)
    form_id = client.post("/v1/booking-forms", json={}).json()["form_id"]
    client.patch(
        f"/v1/booking-forms/{form_id}",
        json={"guest_id": 7, "room_id": 101, "check_in": "2025-06-05", "check_out": "2025-06-01"},
    )

    response = client.post(f"/v1/booking-forms/{form_id}/submit")

    assert response.status_code == 422
    fields = [error["field"] for error in response.json()["detail"]["errors"]]
    assert fields == ["check_out", "number_of_guests"]
    assert transport.calls("POST", "/bookings") == []
    assert transport.calls("POST", "/bookings/calculate-rate") == []
    assert client.get(f"/v1/booking-forms/{form_id}").status_code == 200


def test_health(client):
    assert client.get("/v1/admin/health").json() == {"ok": True, "session_store": True}


def test_settings_are_kept_across_logout_and_login(client, transport):
    _login(client)
    client.put("/v1/settings", json={"currency": "EUR", "date_format": "YYYY-MM-DD"})
    client.post("/api/auth/logout")
    transport.routes[("POST", "/auth/login")] = (
        200,
        {"token": "tok-2", "user": {"id": 1, "username": "reception"}},
    )
    _login(client)

    settings = client.get("/v1/settings").json()

    assert settings["currency"] == "EUR"
    assert settings["date_format"] == "YYYY-MM-DD"


def test_logged_out_token_cannot_be_reused(client):
    _login(client)
    client.post("/api/auth/logout")

    response = client.get("/v1/settings", headers={"Authorization": "Bearer tok-1"})

    assert response.status_code == 401
    assert response.json()["detail"]["message"] == "Session ended, please log in again"


def test_inactive_session_stays_logged_out(client, manager):
    _login(client)
    client.put("/v1/settings", json={"auto_logout_enabled": True, "auto_logout_timeout": 1})

    async def age_session():
        session = await manager.store.get("tok-1")
        session.last_activity -= 3600
        await manager.store.save("tok-1", session)

    asyncio.run(age_session())

    first = client.get("/v1/settings")
    assert first.status_code == 401
    assert first.json()["detail"]["message"] == "Auto-logout due to inactivity"
    assert 'token=""' in first.headers["set-cookie"]
    assert "Max-Age=0" in first.headers["set-cookie"]

    second = client.get("/v1/settings", headers={"Authorization": "Bearer tok-1"})
    assert second.status_code == 401
    assert second.json()["detail"]["message"] == "Auto-logout due to inactivity"


def test_editing_booking_with_unreadable_total(client, transport):
    transport.routes[("GET", "/bookings/5")] = (
        200,
        {"id": 5, "guest_id": 7, "room_id": 101, "check_in": "2025-06-01", "total_amount": "n/a"},
    )
    _login(client)

    response = client.post("/v1/booking-forms", json={"booking_id": 5})

    assert response.status_code == 201
    assert response.json()["mode"] == "edit"
    assert response.json()["draft"]["total_amount"] is None
    assert response.json()["display"] == {"display_check_in": "01/06/2025"}
