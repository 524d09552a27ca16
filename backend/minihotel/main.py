from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from minihotel.api import proxy
from minihotel.api.deps import get_session_manager
from minihotel.api.v1 import admin, booking_forms, bookings, currency, settings as settings_api
from minihotel.booking.form import BookingFormRegistry
from minihotel.core.config import get_settings
from minihotel.core.logging import setup_logging
from minihotel.currency.rates import ExchangeRateTable
from minihotel.currency.service import CurrencyService
from minihotel.hotel_api.client import HotelAPIClient
from minihotel.hotel_api.resources import HotelAPI
from minihotel.session.manager import DashboardSessionManager
from minihotel.session.store import get_session_store

logger = logging.getLogger(__name__)

settings = get_settings()
setup_logging()


def build_session_manager() -> DashboardSessionManager:
    client = HotelAPIClient()
    currency_service = CurrencyService(
        ExchangeRateTable(base_currency=settings.base_currency),
        HotelAPI(client),
        display_currency=settings.default_display_currency,
    )
    return DashboardSessionManager(
        store=get_session_store(),
        client=client,
        currency=currency_service,
        forms=BookingFormRegistry(),
    )


async def _warmup(manager: DashboardSessionManager) -> None:
    """Loads exchange rates and checks the session store once at startup."""

    table, store_ok = await asyncio.gather(
        manager.currency.refresh_rates(),
        manager.store.ping(),
    )
    if not store_ok:
        logger.warning("Session store ping failed")
    logger.info(
        "Warmup complete: %d currencies (last_updated=%s), session store %s",
        len(table.codes()),
        table.last_updated,
        "ok" if store_ok else "unavailable",
    )


def create_app(manager: DashboardSessionManager | None = None) -> FastAPI:
    manager = manager or build_session_manager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        warmup_task: asyncio.Task | None = None

        if settings.refresh_rates_on_startup:
            def _log_warmup_result(task: asyncio.Task) -> None:
                if task.cancelled():
                    return
                exc = task.exception()
                if exc:
                    logger.error("Warmup task failed: %s", exc)

            warmup_task = asyncio.create_task(_warmup(manager))
            warmup_task.add_done_callback(_log_warmup_result)
        else:
            logger.info("Startup exchange rate refresh is disabled via configuration")

        try:
            yield
        finally:
            if warmup_task:
                warmup_task.cancel()
                with suppress(asyncio.CancelledError):
                    await warmup_task

            manager.forms.clear()
            await manager.client.close()
            await manager.store.close()
            logger.info("Hotel API client and session store closed")

    app = FastAPI(title="MiniHotel Dashboard API", lifespan=lifespan)
    api_prefix = settings.api_prefix

    app.dependency_overrides[get_session_manager] = lambda: manager

    app.include_router(booking_forms.router, prefix=api_prefix)
    app.include_router(bookings.router, prefix=api_prefix)
    app.include_router(currency.router, prefix=api_prefix)
    app.include_router(settings_api.router, prefix=api_prefix)
    app.include_router(admin.router, prefix=api_prefix)
    app.include_router(proxy.router, prefix=settings.proxy_prefix)
    return app


app = create_app()
