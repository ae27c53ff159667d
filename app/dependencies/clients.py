"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import (
    BingImageClient,
    LoginStateEncoder,
    OaiFreeClient,
    SQLiteStore,
    UpstreamProxy,
)
from app.core.config import get_settings
from app.services import (
    CredentialStore,
    LoginService,
    OAuthRedirectResolver,
    ShareTokenMinter,
    TokenRefresher,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_config_store() -> SQLiteStore:
    """Provide the shared key-value store for site config and accounts."""
    settings = _settings()
    return SQLiteStore(settings.store_db_path)


@lru_cache()
def get_credential_store() -> CredentialStore:
    return CredentialStore(get_config_store())


@lru_cache()
def get_oaifree_client() -> OaiFreeClient:
    """Create a singleton client for the token service endpoints."""
    settings = _settings()
    return OaiFreeClient(settings.service, timeout=settings.http_timeout_seconds)


@lru_cache()
def get_login_state_encoder() -> LoginStateEncoder:
    settings = _settings()
    return LoginStateEncoder(secret_key=settings.security.login_state_secret)


@lru_cache()
def get_token_refresher() -> TokenRefresher:
    """Process-wide refresher so per-account refresh locks are shared."""
    return TokenRefresher(get_credential_store(), get_oaifree_client())


@lru_cache()
def get_login_service() -> LoginService:
    """Build the login flow service from the shared clients."""
    settings = _settings()
    client = get_oaifree_client()
    return LoginService(
        config_store=get_config_store(),
        credentials=get_credential_store(),
        refresher=get_token_refresher(),
        minter=ShareTokenMinter(client, settings.share_token),
        resolver=OAuthRedirectResolver(client),
        state_encoder=get_login_state_encoder(),
        security=settings.security,
    )


@lru_cache()
def get_upstream_proxy() -> UpstreamProxy:
    """Provide the passthrough proxy for non-login traffic."""
    settings = _settings()
    return UpstreamProxy(settings.service, timeout=settings.http_timeout_seconds)


@lru_cache()
def get_background_image_client() -> BingImageClient | None:
    """Provide the login background client when enabled."""
    settings = _settings()
    if not settings.login_background_enabled:
        return None
    return BingImageClient(timeout=min(settings.http_timeout_seconds, 5.0))


__all__ = [
    "get_background_image_client",
    "get_config_store",
    "get_credential_store",
    "get_login_service",
    "get_login_state_encoder",
    "get_oaifree_client",
    "get_token_refresher",
    "get_upstream_proxy",
]
