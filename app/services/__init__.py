"""Service layer exports."""

from .credentials import AccountNotFoundError, CredentialStore
from .jwt_inspector import DecodeError, decode_payload, is_expired
from .login_flow import AuthError, LoginService, SiteConfig
from .oauth_redirect import OAuthRedirectResolver
from .share_tokens import ShareTokenMinter
from .token_refresher import TokenRefresher

__all__ = [
    "AccountNotFoundError",
    "AuthError",
    "CredentialStore",
    "DecodeError",
    "LoginService",
    "OAuthRedirectResolver",
    "ShareTokenMinter",
    "SiteConfig",
    "TokenRefresher",
    "decode_payload",
    "is_expired",
]
