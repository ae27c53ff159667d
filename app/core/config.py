"""
Application configuration models and helpers.

Centralizes settings management so the routes, the token services and the
store admin script share a consistent configuration surface. Per-site values
(passwords, allow-lists, account records) live in the key-value store rather
than in the environment; see ``app.services.login_flow.SiteConfig``.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os
import secrets

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class ServiceSettings(BaseSettings):
    """Hosts of the third-party token services and the proxied upstream."""

    service_domain: str = Field("oaifree.com", validation_alias="SERVICE_DOMAIN")
    upstream_host: str = Field("new.oaifree.com", validation_alias="UPSTREAM_HOST")
    upstream_scheme: str = Field("https", validation_alias="UPSTREAM_SCHEME")

    @property
    def refresh_url(self) -> str:
        return f"https://token.{self.service_domain}/api/auth/refresh"

    @property
    def register_url(self) -> str:
        return f"https://chat.{self.service_domain}/token/register"


class SecuritySettings(BaseSettings):
    """Signing configuration for the login state carried between forms."""

    login_state_secret: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        validation_alias="LOGIN_STATE_SECRET",
        description=(
            "HMAC key for login state tokens. A random per-process key is used "
            "when unset, which invalidates pending account forms on restart."
        ),
    )
    login_state_ttl_seconds: int = Field(900, validation_alias="LOGIN_STATE_TTL")


class ShareTokenSettings(BaseSettings):
    """Usage limits requested for every minted share token."""

    site_limit: str = Field("", validation_alias="SHARE_SITE_LIMIT")
    expires_in: int = Field(
        0,
        validation_alias="SHARE_EXPIRES_IN",
        description="Lifetime in seconds; 0 never expires.",
    )
    gpt35_limit: int = Field(-1, validation_alias="SHARE_GPT35_LIMIT")
    gpt4_limit: int = Field(-1, validation_alias="SHARE_GPT4_LIMIT")
    show_conversations: bool = Field(False, validation_alias="SHARE_SHOW_CONVERSATIONS")
    show_userinfo: bool = Field(False, validation_alias="SHARE_SHOW_USERINFO")
    reset_limit: bool = Field(False, validation_alias="SHARE_RESET_LIMIT")
    temporary_chat: Optional[bool] = Field(
        None,
        validation_alias="SHARE_TEMPORARY_CHAT",
        description="Only sent to the register endpoint when configured.",
    )

    @field_validator("gpt35_limit", "gpt4_limit")
    @classmethod
    def _check_limit(cls, value: int) -> int:
        """Usage caps are either -1 (unlimited) or a non-negative count."""
        if value < -1:
            raise ValueError("usage limit must be -1 or greater")
        return value


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    store_db_path: str = Field("./data/gateway.db", validation_alias="STORE_DB_PATH")
    http_timeout_seconds: float = Field(10.0, validation_alias="HTTP_TIMEOUT_SECONDS")
    direct_login_enabled: bool = Field(True, validation_alias="DIRECT_LOGIN_ENABLED")
    login_background_enabled: bool = Field(
        True,
        validation_alias="LOGIN_BACKGROUND_ENABLED",
        description="Fetch the Bing daily image as the login page background.",
    )
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    share_token: ShareTokenSettings = Field(default_factory=ShareTokenSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "SecuritySettings",
    "ServiceSettings",
    "ShareTokenSettings",
    "get_settings",
]
