"""
Client for the third-party token services behind the share login flow.

Three endpoints are involved: the refresh endpoint that turns a refresh token
into an access token, the register endpoint that mints a share token from an
access token, and the proxied site's OAuth endpoint that exchanges a share
token for a one-time login URL.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx

from app.core.config import ServiceSettings
from app.schemas import OAuthTokenResponse, RefreshTokenResponse, ShareTokenResponse
from app.utils.http import parse_model

logger = logging.getLogger(__name__)


class TokenExchangeError(Exception):
    """Base class for failures in the refresh → mint → resolve chain.

    The message is short and safe to show to the end user.
    """


class RefreshError(TokenExchangeError):
    """Raised when an access token cannot be refreshed."""


class MintError(TokenExchangeError):
    """Raised when the register endpoint does not return a share token."""


class ResolveError(TokenExchangeError):
    """Raised when no login URL is returned for a share token."""


class OaiFreeClient:
    """Call the refresh, register and OAuth token endpoints."""

    def __init__(
        self,
        settings: ServiceSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def refresh_access_token(self, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token."""
        async with self._client() as client:
            response = await client.post(
                self._settings.refresh_url,
                data={"refresh_token": refresh_token},
                headers={"Content-Type": "application/x-www-form-urlencoded;charset=UTF-8"},
            )

        if not response.is_success:
            logger.warning("Refresh endpoint returned HTTP %s", response.status_code)
            raise RefreshError("Error fetching access token")

        try:
            payload = parse_model(response, RefreshTokenResponse)
        except ValueError as exc:
            raise RefreshError("Incomplete refresh payload returned") from exc
        return payload.access_token

    async def register_share_token(self, form: Mapping[str, str]) -> str:
        """
        Mint a share token.

        Transport failures and non-2xx statuses raise ``httpx.HTTPError``; a
        successful response without ``token_key`` raises ``MintError``.
        """
        async with self._client() as client:
            response = await client.post(self._settings.register_url, data=dict(form))
        response.raise_for_status()

        try:
            payload = parse_model(response, ShareTokenResponse)
        except ValueError as exc:
            logger.warning("Register endpoint response did not contain a token_key")
            raise MintError("token获取失败，请刷新重试") from exc
        return payload.token_key

    async def fetch_login_url(self, share_token: str, domain: str) -> str:
        """Exchange a share token for a login URL on ``domain``."""
        origin = f"https://{domain}"
        async with self._client() as client:
            response = await client.post(
                f"{origin}/api/auth/oauth_token",
                json={"share_token": share_token},
                headers={"Origin": origin},
            )
        response.raise_for_status()

        try:
            payload = parse_model(response, OAuthTokenResponse)
        except ValueError as exc:
            logger.warning("OAuth token endpoint on %s returned no login_url", domain)
            raise ResolveError("登录链接获取失败，请刷新重试") from exc
        return payload.login_url


__all__ = [
    "MintError",
    "OaiFreeClient",
    "RefreshError",
    "ResolveError",
    "TokenExchangeError",
]
