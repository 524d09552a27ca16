import asyncio
import os
from datetime import date, timedelta
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from minihotel.booking.models import RateQuery
from minihotel.booking.orchestrator import RateCalculationOrchestrator
from minihotel.currency.rates import ExchangeRateTable
from minihotel.currency.service import CurrencyService, format_money
from minihotel.hotel_api.client import HotelAPIClient
from minihotel.hotel_api.resources import HotelAPI


async def main() -> None:
    client = HotelAPIClient()
    api = HotelAPI(client, token=os.getenv("HOTEL_API_TOKEN"))
    currency = CurrencyService(ExchangeRateTable(), api, display_currency=os.getenv("DISPLAY_CURRENCY", "EUR"))

    check_in = date.today() + timedelta(days=7)
    query = RateQuery(
        room_id=int(os.getenv("ROOM_ID", "1")),
        check_in=check_in,
        check_out=check_in + timedelta(days=2),
        number_of_guests=2,
    )
    orchestrator = RateCalculationOrchestrator(
        lambda q: api.calculate_rate(q.to_payload()),
        listener=lambda old, new: print(f"{old.value} -> {new.value}"),
    )
    try:
        await currency.refresh_rates()
        orchestrator.update(query)
        quote = await orchestrator.wait()
    finally:
        await client.close()

    print("Check-in:", query.check_in)
    print("Check-out:", query.check_out)
    if quote is None:
        print("No quote")
        return
    print("Base:", format_money(quote.amount, currency.base_currency))
    print("Display:", format_money(currency.convert(quote.amount), currency.display_currency))


if __name__ == "__main__":
    asyncio.run(main())
