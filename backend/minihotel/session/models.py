from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field, fields
from typing import Any

DATE_FORMATS = ("DD/MM/YYYY", "MM/DD/YYYY", "YYYY-MM-DD")
TIME_FORMATS = ("24h", "12h")
AUTO_LOGOUT_REASON = "Auto-logout due to inactivity"
SESSION_ENDED_REASON = "Session ended, please log in again"


@dataclass
class DisplaySettings:
    language: str = "en"
    currency: str = "CZK"
    date_format: str = "DD/MM/YYYY"
    time_format: str = "24h"
    hotel_name: str = ""
    auto_logout_enabled: bool = False
    # minutes
    auto_logout_timeout: int = 30

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None, *, defaults: DisplaySettings | None = None) -> DisplaySettings:
        """Stored values win over defaults, unknown keys are dropped."""

        base = (defaults or cls()).to_dict()
        if isinstance(raw, dict):
            known = {item.name for item in fields(cls)}
            base.update({key: value for key, value in raw.items() if key in known})
        if base["date_format"] not in DATE_FORMATS:
            base["date_format"] = DATE_FORMATS[0]
        if base["time_format"] not in TIME_FORMATS:
            base["time_format"] = TIME_FORMATS[0]
        return cls(**base)

    def merged(self, changes: dict[str, Any]) -> DisplaySettings:
        return DisplaySettings.from_dict({**self.to_dict(), **changes})


@dataclass
class DashboardSession:
    user_id: int | None = None
    username: str | None = None
    settings: DisplaySettings = field(default_factory=DisplaySettings)
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)

    def touch(self, now: float | None = None) -> None:
        self.last_activity = time.time() if now is None else now

    def is_expired(self, now: float | None = None) -> bool:
        if not self.settings.auto_logout_enabled:
            return False
        timeout = self.settings.auto_logout_timeout * 60
        if timeout <= 0:
            return False
        now = time.time() if now is None else now
        return now - self.last_activity > timeout

    def to_dict(self) -> dict[str, Any]:
        """Session record only; display settings are stored per user."""

        return {
            "user_id": self.user_id,
            "username": self.username,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
        }

    @classmethod
    def from_dict(
        cls, raw: dict[str, Any] | None, *, settings: DisplaySettings | None = None
    ) -> DashboardSession | None:
        if not isinstance(raw, dict):
            return None
        now = time.time()
        return cls(
            user_id=raw.get("user_id"),
            username=raw.get("username"),
            settings=settings or DisplaySettings(),
            created_at=raw.get("created_at", now),
            last_activity=raw.get("last_activity", now),
        )


__all__ = [
    "AUTO_LOGOUT_REASON",
    "SESSION_ENDED_REASON",
    "DATE_FORMATS",
    "TIME_FORMATS",
    "DashboardSession",
    "DisplaySettings",
]
