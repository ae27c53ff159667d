"""Schemas for the token service responses consumed during login."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _ServiceResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RefreshTokenResponse(_ServiceResponse):
    """Body returned by the refresh endpoint."""

    access_token: str = Field(..., min_length=1)


class ShareTokenResponse(_ServiceResponse):
    """Body returned by the share token register endpoint."""

    token_key: str = Field(..., min_length=1)


class OAuthTokenResponse(_ServiceResponse):
    """Body returned when exchanging a share token for a login URL."""

    login_url: str = Field(..., min_length=1)


__all__ = ["OAuthTokenResponse", "RefreshTokenResponse", "ShareTokenResponse"]
