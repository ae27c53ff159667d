"""Expose constructed client wrappers."""

from .bing_image import BingImageClient
from .login_state import LoginStateEncoder
from .oaifree import (
    MintError,
    OaiFreeClient,
    RefreshError,
    ResolveError,
    TokenExchangeError,
)
from .sqlite_store import SQLiteStore
from .upstream import UpstreamProxy

__all__ = [
    "BingImageClient",
    "LoginStateEncoder",
    "MintError",
    "OaiFreeClient",
    "RefreshError",
    "ResolveError",
    "SQLiteStore",
    "TokenExchangeError",
    "UpstreamProxy",
]
