"""Public schema exports."""

from .auth import OAuthTokenResponse, RefreshTokenResponse, ShareTokenResponse

__all__ = [
    "OAuthTokenResponse",
    "RefreshTokenResponse",
    "ShareTokenResponse",
]
