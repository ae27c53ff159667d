"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_background_image_client,
    get_config_store,
    get_credential_store,
    get_login_service,
    get_login_state_encoder,
    get_oaifree_client,
    get_token_refresher,
    get_upstream_proxy,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_background_image_client",
    "get_config_store",
    "get_credential_store",
    "get_login_service",
    "get_login_state_encoder",
    "get_oaifree_client",
    "get_token_refresher",
    "get_upstream_proxy",
]
