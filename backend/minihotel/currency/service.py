from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from minihotel.currency.rates import ExchangeRateTable, RateEntry, normalize_code
from minihotel.hotel_api.client import HotelAPIError

if TYPE_CHECKING:  # pragma: no cover
    from minihotel.hotel_api.resources import HotelAPI

logger = logging.getLogger(__name__)


class CurrencyCodeError(ValueError):
    """Tracked currency codes are exactly three letters."""


class CurrencyService:
    """Converts amounts between the base currency and a display currency.

    Missing or unusable rates count as 1, so conversion never raises. Values
    are never rounded here; rounding is a display concern.
    """

    def __init__(
        self,
        table: ExchangeRateTable,
        api: "HotelAPI | None" = None,
        *,
        display_currency: str | None = None,
    ) -> None:
        self._table = table
        self._api = api
        self._display_currency = normalize_code(display_currency) or table.base_currency

    @property
    def table(self) -> ExchangeRateTable:
        return self._table

    @property
    def base_currency(self) -> str:
        return self._table.base_currency

    @property
    def display_currency(self) -> str:
        return self._display_currency

    @display_currency.setter
    def display_currency(self, code: str) -> None:
        self._display_currency = normalize_code(code) or self._table.base_currency

    @property
    def last_updated(self) -> str | None:
        return self._table.last_updated

    def for_display(self, currency: str | None, api: "HotelAPI | None" = None) -> CurrencyService:
        return CurrencyService(self._table, api or self._api, display_currency=currency)

    def _rate(self, code: str | None) -> float:
        return self._table.get(code) or 1.0

    def convert(self, amount: float, from_currency: str | None = None) -> float:
        source = from_currency or self.base_currency
        amount_in_base = amount / self._rate(source)
        return amount_in_base * self._rate(self._display_currency)

    def convert_to_base(self, amount: float, from_currency: str | None = None) -> float:
        source = from_currency or self._display_currency
        return amount / self._rate(source)

    async def refresh_rates(self) -> ExchangeRateTable:
        if self._api is None:
            return self._table
        try:
            payload = await self._api.get_exchange_rates()
        except HotelAPIError as exc:
            logger.warning("Exchange rate refresh failed, keeping current table: %s", exc)
            return self._table

        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict) or not rates:
            logger.warning("Exchange rate refresh returned no rates, keeping current table")
            return self._table

        last_updated = payload.get("last_updated")
        self._table.replace(rates, str(last_updated) if last_updated else None)
        logger.info(
            "Exchange rates refreshed: %d currencies (last_updated=%s)",
            len(self._table.codes()),
            self._table.last_updated,
        )
        return self._table

    async def add_tracked_currency(self, code: str) -> RateEntry:
        code = normalize_code(code)
        if len(code) != 3:
            raise CurrencyCodeError("Currency code must be exactly 3 characters")
        if self._api is None:
            raise RuntimeError("Currency service has no API client")

        payload = await self._api.add_exchange_rate(code)
        rate = payload.get("rate") if isinstance(payload, dict) else None
        entry = self._table.merge(code, rate)
        self._display_currency = entry.code
        logger.info("Tracking currency %s at rate %s", entry.code, entry.rate)
        return entry


def format_money(amount: float, currency: str | None) -> str:
    return f"{amount:.2f} {normalize_code(currency)}"


__all__ = ["CurrencyCodeError", "CurrencyService", "format_money"]
