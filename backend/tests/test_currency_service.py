import asyncio
import math

import pytest

from _helpers import RecordingTransport, make_api, request_json
from minihotel.currency.rates import DEFAULT_EXCHANGE_RATES, ExchangeRateTable
from minihotel.currency.service import CurrencyCodeError, CurrencyService, format_money


def _service(display="EUR", transport=None):
    api = make_api(transport) if transport is not None else None
    return CurrencyService(ExchangeRateTable(), api, display_currency=display)


def test_default_table_is_based_on_czk():
    table = ExchangeRateTable()

    assert table.base_currency == "CZK"
    assert table.as_dict() == DEFAULT_EXCHANGE_RATES
    assert table.get("czk") == 1.0


def test_convert_from_base_into_display_currency():
    service = _service("EUR")

    assert service.convert(1000) == pytest.approx(41.0)
    assert service.convert(1000, "USD") == pytest.approx(1000 / 0.044 * 0.041)


@pytest.mark.parametrize("amount", [0.0, 1.0, 123.45, 98765.4321])
@pytest.mark.parametrize("display", ["CZK", "EUR", "USD", "GBP"])
def test_convert_to_base_reverses_convert(amount, display):
    service = _service(display)

    assert service.convert_to_base(service.convert(amount)) == pytest.approx(amount)


def test_conversion_is_not_rounded():
    service = _service("USD")

    assert service.convert(1) == 0.044
    assert service.convert_to_base(10) == pytest.approx(227.27272727)
    assert service.convert_to_base(10) != round(service.convert_to_base(10), 2)


def test_unknown_currency_counts_as_rate_one():
    service = _service("XYZ")

    assert service.convert(150) == 150
    assert service.convert(150, "ABC") == 150
    assert service.convert_to_base(150, None) == 150


def test_invalid_rates_are_dropped_from_table():
    table = ExchangeRateTable({"EUR": 0, "USD": "nan", "GBP": -1, "PLN": "0.17", "HUF": True})

    assert table.codes() == ["CZK", "PLN"]
    assert table.get("PLN") == pytest.approx(0.17)
    assert math.isclose(CurrencyService(table, display_currency="EUR").convert(10), 10)


def test_format_money_uses_two_decimals():
    assert format_money(41, "eur") == "41.00 EUR"
    assert format_money(1234.567, "CZK") == "1234.57 CZK"


def test_refresh_rates_replaces_table():
    transport = RecordingTransport(
        {
            ("GET", "/exchange-rates"): (
                200,
                {"rates": {"CZK": 1, "EUR": 0.04, "PLN": 0.17}, "last_updated": "2025-06-01T08:00:00"},
            )
        }
    )
    service = _service("EUR", transport)

    asyncio.run(service.refresh_rates())

    assert service.table.as_dict() == {"CZK": 1.0, "EUR": 0.04, "PLN": 0.17}
    assert service.last_updated == "2025-06-01T08:00:00"
    assert service.convert(100) == pytest.approx(4.0)


def test_refresh_rates_failure_keeps_current_table():
    transport = RecordingTransport({("GET", "/exchange-rates"): (500, {"error": "boom"})})
    service = _service("EUR", transport)

    asyncio.run(service.refresh_rates())

    assert service.table.as_dict() == DEFAULT_EXCHANGE_RATES
    assert service.last_updated is None


def test_refresh_rates_without_rates_keeps_current_table():
    transport = RecordingTransport({("GET", "/exchange-rates"): (200, {"rates": {}})})
    service = _service("EUR", transport)

    asyncio.run(service.refresh_rates())

    assert service.table.as_dict() == DEFAULT_EXCHANGE_RATES


@pytest.mark.parametrize("code", ["", "EU", "EURO", "  us "])
def test_add_tracked_currency_rejects_bad_code_without_request(code):
    transport = RecordingTransport()
    service = _service("EUR", transport)

    with pytest.raises(CurrencyCodeError):
        asyncio.run(service.add_tracked_currency(code))

    assert transport.requests == []
    assert service.display_currency == "EUR"


def test_add_tracked_currency_merges_rate_and_switches_display():
    transport = RecordingTransport(
        {("POST", "/exchange-rates"): (201, {"code": "PLN", "rate": 0.17})}
    )
    service = _service("EUR", transport)
    other_session = service.for_display("USD")

    entry = asyncio.run(service.add_tracked_currency(" pln "))

    assert (entry.code, entry.rate) == ("PLN", 0.17)
    assert service.display_currency == "PLN"
    assert request_json(transport.requests[0]) == {"code": "PLN"}
    # the rate table is shared, other sessions keep their own display currency
    assert other_session.table.get("PLN") == 0.17
    assert other_session.display_currency == "USD"
