from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

DEFAULT_BASE_CURRENCY = "CZK"

# Units of each currency per 1 CZK, used until the first successful refresh
DEFAULT_EXCHANGE_RATES: dict[str, float] = {
    "CZK": 1.0,
    "EUR": 0.041,
    "USD": 0.044,
    "GBP": 0.035,
}


@dataclass(frozen=True)
class RateEntry:
    code: str
    rate: float


def normalize_code(code: str | None) -> str:
    return str(code or "").strip().upper()


class ExchangeRateTable:
    """Currency code -> units of that currency per one unit of base currency.

    Shared by every dashboard session; writers replace or extend the mapping,
    readers always see the latest committed one.
    """

    def __init__(
        self,
        rates: Mapping[str, float] | None = None,
        *,
        base_currency: str = DEFAULT_BASE_CURRENCY,
        last_updated: str | None = None,
    ) -> None:
        self.base_currency = normalize_code(base_currency)
        self._rates: dict[str, float] = {}
        self.last_updated = last_updated
        self.replace(rates if rates is not None else DEFAULT_EXCHANGE_RATES, last_updated)

    def get(self, code: str | None) -> float | None:
        return self._rates.get(normalize_code(code))

    def as_dict(self) -> dict[str, float]:
        return dict(self._rates)

    def codes(self) -> list[str]:
        return sorted(self._rates)

    def replace(self, rates: Mapping[str, Any], last_updated: str | None = None) -> None:
        new_rates: dict[str, float] = {}
        for code, value in rates.items():
            rate = _to_rate(value)
            if rate is not None:
                new_rates[normalize_code(code)] = rate
        new_rates[self.base_currency] = 1.0
        self._rates = new_rates
        self.last_updated = last_updated

    def merge(self, code: str, rate: float) -> RateEntry:
        code = normalize_code(code)
        if code == self.base_currency:
            return RateEntry(code=code, rate=1.0)
        value = _to_rate(rate)
        if value is None:
            raise ValueError(f"invalid exchange rate for {code}: {rate!r}")
        self._rates = {**self._rates, code: value}
        return RateEntry(code=code, rate=value)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_code(code) in self._rates


def _to_rate(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if rate <= 0 or rate != rate:
        return None
    return rate


__all__ = [
    "DEFAULT_BASE_CURRENCY",
    "DEFAULT_EXCHANGE_RATES",
    "ExchangeRateTable",
    "RateEntry",
    "normalize_code",
]
