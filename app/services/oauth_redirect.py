"""Turn a share token into the proxied site's login URL."""

from __future__ import annotations

from urllib.parse import urlsplit

from app.clients.oaifree import OaiFreeClient, ResolveError


def normalize_domain(value: str) -> str:
    """Accept ``host``, ``host:port`` or a full origin and return the bare authority."""
    candidate = value.strip()
    if "//" not in candidate:
        candidate = f"//{candidate}"
    return urlsplit(candidate).netloc


class OAuthRedirectResolver:
    def __init__(self, client: OaiFreeClient) -> None:
        self._client = client

    async def resolve(self, share_token: str, proxy_domain: str) -> str:
        domain = normalize_domain(proxy_domain)
        if not domain:
            raise ResolveError("未配置登录域名")
        return await self._client.fetch_login_url(share_token, domain)


__all__ = ["OAuthRedirectResolver", "normalize_domain"]
