from __future__ import annotations

import hashlib
import json
import logging
import time
from functools import lru_cache
from typing import Any

import redis.asyncio as redis

from minihotel.core.config import get_settings
from minihotel.session.models import DashboardSession, DisplaySettings

logger = logging.getLogger(__name__)

STORAGE_KEY = "minihotel-settings"
SESSION_KEY = "minihotel-session"
REVOKED_KEY = "minihotel-revoked"


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]


def session_key(token: str) -> str:
    return f"{SESSION_KEY}:{_digest(token)}"


def revoked_key(token: str) -> str:
    return f"{REVOKED_KEY}:{_digest(token)}"


def settings_owner(session: DashboardSession, token: str) -> str:
    """Display settings belong to the user, or to the token when no user is known."""

    if session.user_id is not None:
        return f"user:{session.user_id}"
    if session.username:
        return f"name:{session.username}"
    return f"token:{_digest(token)}"


def settings_key(owner: str) -> str:
    return f"{STORAGE_KEY}:{owner}"


def default_display_settings() -> DisplaySettings:
    return DisplaySettings(currency=get_settings().default_display_currency)


class DashboardSessionStore:
    """Keeps token-scoped session records apart from per-user display settings.

    Session records expire after the configured TTL and are replaced by a
    revocation marker on teardown. Settings have no TTL and survive logout.
    """

    def __init__(self, ttl_seconds: int) -> None:
        self._ttl_seconds = ttl_seconds

    async def _read(self, key: str) -> Any:
        raise NotImplementedError

    async def _write(self, key: str, value: Any, ttl: int | None = None) -> None:
        raise NotImplementedError

    async def _remove(self, key: str) -> None:
        raise NotImplementedError

    async def get(self, token: str) -> DashboardSession | None:
        raw = await self._read(session_key(token))
        session = DashboardSession.from_dict(raw)
        if session is None:
            return None
        session.settings = await self.get_settings(settings_owner(session, token))
        return session

    async def save(self, token: str, session: DashboardSession) -> None:
        await self._write(session_key(token), session.to_dict(), self._ttl_seconds)
        await self.save_settings(settings_owner(session, token), session.settings)

    async def delete(self, token: str, *, reason: str | None = None) -> None:
        """Drops the session record and marks the token as revoked."""

        await self._remove(session_key(token))
        await self._write(revoked_key(token), {"reason": reason or ""}, self._ttl_seconds)

    async def revoked_reason(self, token: str) -> str | None:
        raw = await self._read(revoked_key(token))
        if not isinstance(raw, dict):
            return None
        return str(raw.get("reason") or "")

    async def clear_revocation(self, token: str) -> None:
        await self._remove(revoked_key(token))

    async def get_settings(self, owner: str) -> DisplaySettings:
        return DisplaySettings.from_dict(
            await self._read(settings_key(owner)), defaults=default_display_settings()
        )

    async def save_settings(self, owner: str, settings: DisplaySettings) -> None:
        await self._write(settings_key(owner), settings.to_dict())

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class InMemoryDashboardSessionStore(DashboardSessionStore):
    def __init__(self, ttl_seconds: int | None = None) -> None:
        super().__init__(ttl_seconds or get_settings().session_ttl_seconds)
        # key -> (value, expires_at)
        self._storage: dict[str, tuple[Any, float | None]] = {}

    async def _read(self, key: str) -> Any:
        item = self._storage.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= time.time():
            del self._storage[key]
            return None
        return value

    async def _write(self, key: str, value: Any, ttl: int | None = None) -> None:
        expires_at = time.time() + ttl if ttl else None
        self._storage[key] = (value, expires_at)

    async def _remove(self, key: str) -> None:
        self._storage.pop(key, None)


class RedisDashboardSessionStore(DashboardSessionStore):
    """Dashboard sessions and settings kept in Redis as JSON values."""

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int) -> None:
        super().__init__(ttl_seconds)
        self._redis = redis_client

    async def _read(self, key: str) -> Any:
        data = await self._redis.get(key)
        if data is None:
            return None
        decoded = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)
        try:
            return json.loads(decoded)
        except ValueError:
            logger.warning("Dropping unreadable value under %s", key)
            return None

    async def _write(self, key: str, value: Any, ttl: int | None = None) -> None:
        payload = json.dumps(value, ensure_ascii=False).encode("utf-8")
        if ttl:
            await self._redis.setex(key, ttl, payload)
        else:
            await self._redis.set(key, payload)

    async def _remove(self, key: str) -> None:
        await self._redis.delete(key)

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except redis.RedisError:
            return False

    async def close(self) -> None:
        await self._redis.aclose()


@lru_cache(maxsize=1)
def get_session_store() -> DashboardSessionStore:
    settings = get_settings()
    if not settings.use_redis_session_store:
        logger.info("Using in-memory dashboard session store")
        return InMemoryDashboardSessionStore(settings.session_ttl_seconds)
    client = redis.Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=False)
    return RedisDashboardSessionStore(client, ttl_seconds=settings.session_ttl_seconds)


__all__ = [
    "STORAGE_KEY",
    "DashboardSessionStore",
    "InMemoryDashboardSessionStore",
    "RedisDashboardSessionStore",
    "default_display_settings",
    "get_session_store",
    "revoked_key",
    "session_key",
    "settings_key",
    "settings_owner",
]
