from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from minihotel.booking.form import BookingFormRegistry
from minihotel.core.config import get_settings
from minihotel.currency.service import CurrencyService
from minihotel.hotel_api.client import HotelAPIClient
from minihotel.hotel_api.resources import HotelAPI
from minihotel.session.models import (
    AUTO_LOGOUT_REASON,
    SESSION_ENDED_REASON,
    DashboardSession,
    DisplaySettings,
)
from minihotel.session.store import DashboardSessionStore, session_key, settings_owner

logger = logging.getLogger(__name__)


class SessionExpiredError(RuntimeError):
    """The dashboard session ended; the user has to log in again."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass
class DashboardContext:
    """Everything a request needs on behalf of one logged-in user."""

    token: str
    session: DashboardSession
    api: HotelAPI
    currency: CurrencyService

    @property
    def owner(self) -> str:
        return session_key(self.token)

    @property
    def settings(self) -> DisplaySettings:
        return self.session.settings


class DashboardSessionManager:
    """Creates, loads and tears down dashboard sessions.

    A session starts at login, is touched by every request and ends on
    logout, on an upstream 401 or after the configured inactivity period.
    Ending a session also drops the user's open booking forms.
    """

    def __init__(
        self,
        *,
        store: DashboardSessionStore,
        client: HotelAPIClient,
        currency: CurrencyService,
        forms: BookingFormRegistry,
        form_idle_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._client = client
        self._currency = currency
        self._forms = forms
        self._form_idle_seconds = (
            get_settings().booking_form_idle_seconds
            if form_idle_seconds is None
            else form_idle_seconds
        )
        client.set_unauthorized_handler(self.handle_unauthorized)

    @property
    def client(self) -> HotelAPIClient:
        return self._client

    @property
    def currency(self) -> CurrencyService:
        return self._currency

    @property
    def forms(self) -> BookingFormRegistry:
        return self._forms

    @property
    def store(self) -> DashboardSessionStore:
        return self._store

    async def open(
        self, token: str, *, user_id: int | None = None, username: str | None = None
    ) -> DashboardSession:
        await self._store.clear_revocation(token)
        session = DashboardSession(user_id=user_id, username=username)
        session.settings = await self._store.get_settings(settings_owner(session, token))
        await self._store.save(token, session)
        logger.info("Dashboard session opened for user %s", username or user_id or "-")
        # every new session starts from freshly fetched rates
        await self.context(token, session).currency.refresh_rates()
        return session

    async def load(self, token: str, *, now: float | None = None) -> DashboardContext:
        now = time.time() if now is None else now
        evicted = self._forms.evict_idle(self._form_idle_seconds, now=now)
        if evicted:
            logger.info("Evicted %d idle booking forms", evicted)

        revoked = await self._store.revoked_reason(token)
        if revoked is not None:
            raise SessionExpiredError(revoked or SESSION_ENDED_REASON)

        session = await self._store.get(token)
        if session is None:
            session = DashboardSession(created_at=now)
            session.settings = await self._store.get_settings(settings_owner(session, token))
        elif session.is_expired(now):
            await self.teardown(token, reason=AUTO_LOGOUT_REASON)
            raise SessionExpiredError(AUTO_LOGOUT_REASON)

        session.touch(now)
        await self._store.save(token, session)
        return self.context(token, session)

    def context(self, token: str, session: DashboardSession) -> DashboardContext:
        api = HotelAPI(self._client, token=token)
        return DashboardContext(
            token=token,
            session=session,
            api=api,
            currency=self._currency.for_display(session.settings.currency, api),
        )

    async def update_settings(self, context: DashboardContext, changes: dict[str, Any]) -> DisplaySettings:
        context.session.settings = context.session.settings.merged(changes)
        context.currency.display_currency = context.session.settings.currency
        await self._store.save(context.token, context.session)
        return context.session.settings

    async def teardown(self, token: str | None, *, reason: str | None = None) -> None:
        """Ends the token's session; the user's display settings are kept."""

        if not token:
            return
        dropped = self._forms.discard_owner(session_key(token))
        shown = AUTO_LOGOUT_REASON if reason == AUTO_LOGOUT_REASON else SESSION_ENDED_REASON
        await self._store.delete(token, reason=shown)
        logger.info(
            "Dashboard session closed (reason=%s, open forms dropped=%d)",
            reason or "logout",
            dropped,
        )

    async def handle_unauthorized(self, token: str | None, message: str) -> None:
        await self.teardown(token, reason=f"unauthorized: {message}")


__all__ = [
    "DashboardContext",
    "DashboardSessionManager",
    "SessionExpiredError",
]
