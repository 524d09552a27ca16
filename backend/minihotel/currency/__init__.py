"""Exchange rates and base/display currency conversion."""

from .rates import DEFAULT_EXCHANGE_RATES, ExchangeRateTable, RateEntry
from .service import CurrencyCodeError, CurrencyService, format_money

__all__ = [
    "CurrencyCodeError",
    "CurrencyService",
    "DEFAULT_EXCHANGE_RATES",
    "ExchangeRateTable",
    "RateEntry",
    "format_money",
]
