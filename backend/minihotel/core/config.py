from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Dashboard backend configuration loaded from environment variables."""

    hotel_api_url: AnyHttpUrl = Field(
        "http://127.0.0.1:5000/api",
        alias="HOTEL_API_URL",
        description="Base URL of the upstream hotel REST API",
    )
    base_currency: str = Field("CZK", alias="BASE_CURRENCY")
    default_display_currency: str = Field("CZK", alias="DEFAULT_DISPLAY_CURRENCY")

    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    use_redis_session_store: bool = Field(
        True,
        alias="USE_REDIS_SESSION_STORE",
        description="Keep dashboard sessions in Redis instead of process memory",
    )
    session_ttl_seconds: int = Field(86_400, alias="SESSION_TTL_SECONDS")
    booking_form_idle_seconds: float = Field(
        3_600,
        alias="BOOKING_FORM_IDLE_SECONDS",
        description="Open booking forms untouched for this long are discarded",
    )

    request_timeout: float = Field(30.0, alias="REQUEST_TIMEOUT")
    http_retry_attempts: int = Field(3, alias="HTTP_RETRY_ATTEMPTS")
    rate_debounce_seconds: float = Field(
        0.3,
        alias="RATE_DEBOUNCE_SECONDS",
        description="Quiet period before a rate calculation request is sent",
    )
    refresh_rates_on_startup: bool = Field(True, alias="REFRESH_RATES_ON_STARTUP")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    app_env: Literal["dev", "prod", "test"] = Field("dev", alias="APP_ENV")
    api_prefix: str = "/v1"
    proxy_prefix: str = Field("/api", alias="PROXY_PREFIX")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    @property
    def hotel_api_base(self) -> str:
        return str(self.hotel_api_url).rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
