"""
Login flow orchestration: access checks and the token exchange chain.

Site-level configuration (password, allow-list, Turnstile key, login domain)
is read from the key-value store on every request so that changes made with
``scripts/manage_store.py`` apply without a restart.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from app.clients.login_state import InvalidLoginStateError, LoginStateEncoder
from app.core.config import SecuritySettings
from app.services.credentials import AccountNotFoundError, CredentialStore, KeyValueStore
from app.services.oauth_redirect import OAuthRedirectResolver
from app.services.share_tokens import ShareTokenMinter
from app.services.token_refresher import TokenRefresher

logger = logging.getLogger(__name__)

SITE_PASSWORD_KEY = "SITE_PASSWORD"
ALLOWED_USERS_KEY = "ALLOWED_USERS"
TURNSTILE_SITE_KEY_KEY = "TURNSTILE_SITE_KEY"
YOUR_DOMAIN_KEY = "YOUR_DOMAIN"
TOKEN_PREFIX_KEY = "TOKEN_PREFIX"
DEFAULT_ACCOUNT_KEY = "DEFAULT_ACCOUNT"


class AuthError(Exception):
    """Raised when a caller fails the password, allow-list or login state check."""


@dataclass(frozen=True)
class SiteConfig:
    site_password: str = ""
    allowed_users: Tuple[str, ...] = ()
    turnstile_site_key: str = ""
    your_domain: str = ""
    token_prefix: str = ""
    default_account: str = ""

    @classmethod
    def load(cls, store: KeyValueStore) -> "SiteConfig":
        def read(key: str) -> str:
            return store.get(key) or ""

        allowed = tuple(name for name in read(ALLOWED_USERS_KEY).split(",") if name)
        return cls(
            site_password=read(SITE_PASSWORD_KEY),
            allowed_users=allowed,
            turnstile_site_key=read(TURNSTILE_SITE_KEY_KEY),
            your_domain=read(YOUR_DOMAIN_KEY),
            token_prefix=read(TOKEN_PREFIX_KEY),
            default_account=read(DEFAULT_ACCOUNT_KEY),
        )

    def is_allowed(self, unique_name: str) -> bool:
        """Exact, case-sensitive allow-list membership."""
        return unique_name in self.allowed_users


class LoginService:
    """Authenticate callers and walk the refresh → mint → resolve chain."""

    def __init__(
        self,
        *,
        config_store: KeyValueStore,
        credentials: CredentialStore,
        refresher: TokenRefresher,
        minter: ShareTokenMinter,
        resolver: OAuthRedirectResolver,
        state_encoder: LoginStateEncoder,
        security: SecuritySettings,
    ) -> None:
        self._config_store = config_store
        self._credentials = credentials
        self._refresher = refresher
        self._minter = minter
        self._resolver = resolver
        self._state_encoder = state_encoder
        self._security = security

    def site_config(self) -> SiteConfig:
        return SiteConfig.load(self._config_store)

    def authenticate(self, unique_name: str, site_password: str) -> str:
        """Check the site password, then the allow-list; return the user name."""
        config = self.site_config()
        if not hmac.compare_digest(site_password.encode("utf-8"), config.site_password.encode("utf-8")):
            logger.info("Rejected login for %r: wrong site password", unique_name)
            raise AuthError("访问密码错误")
        if not config.is_allowed(unique_name):
            logger.info("Rejected login for %r: not in allow-list", unique_name)
            raise AuthError("用户不在白名单中")
        return unique_name

    def authorize_direct(self, unique_name: str) -> str:
        """Allow-list check used by the ``?un=`` login variant."""
        if not self.site_config().is_allowed(unique_name):
            logger.info("Rejected direct login for %r: not in allow-list", unique_name)
            raise AuthError("Invalid user name, please retry")
        return unique_name

    def list_accounts(self) -> list[str]:
        # Every authenticated user sees every account; there is no owner mapping.
        return self._credentials.list_account_keys()

    def issue_login_state(self, unique_name: str) -> str:
        return self._state_encoder.encode(
            {
                "unique_name": unique_name,
                "issued_at": datetime.now(timezone.utc).isoformat(),
            }
        )

    def verify_login_state(self, state: str) -> str:
        """Return the user name carried by a valid, unexpired login state."""
        if not state:
            raise AuthError("登录状态缺失，请重新登录")
        try:
            payload = self._state_encoder.decode(state)
            issued_at = datetime.fromisoformat(payload["issued_at"])
            unique_name = payload["unique_name"]
        except (InvalidLoginStateError, KeyError, TypeError, ValueError) as exc:
            raise AuthError("登录状态无效，请重新登录") from exc

        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        age = datetime.now(timezone.utc) - issued_at
        if age > timedelta(seconds=self._security.login_state_ttl_seconds):
            raise AuthError("登录状态已过期，请重新登录")

        # The allow-list may have changed since the state was issued.
        if not self.site_config().is_allowed(unique_name):
            raise AuthError("用户不在白名单中")
        return unique_name

    def default_account(self) -> str:
        config = self.site_config()
        if config.default_account:
            return config.default_account
        accounts = self._credentials.list_account_keys()
        if not accounts:
            raise AccountNotFoundError("No accounts configured")
        return accounts[0]

    async def login_url_for(
        self, unique_name: str, account_key: str, *, request_host: Optional[str] = None
    ) -> str:
        """Run the exchange chain for ``account_key`` and return the login URL."""
        config = self.site_config()
        access_token = await self._refresher.get_valid_token(account_key)
        share_token = await self._minter.mint(config.token_prefix + unique_name, access_token)
        domain = config.your_domain or request_host or ""
        return await self._resolver.resolve(share_token, domain)


__all__ = ["AuthError", "LoginService", "SiteConfig"]
