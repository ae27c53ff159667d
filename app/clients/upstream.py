"""Reverse-proxy passthrough for requests that are not part of the login flow."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import Request, Response

from app.core.config import ServiceSettings
from app.utils.http import forwardable_headers

# httpx already decoded the body, so length and encoding no longer describe it.
_RESPONSE_DROP = ("content-length", "content-encoding")
_REQUEST_DROP = ("host", "content-length")


class UpstreamProxy:
    """Forward a request to the upstream host and relay its response verbatim."""

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

    def target_url(self, request: Request) -> httpx.URL:
        """Rewrite the inbound URL onto the upstream host, keeping path and query.

        The path is taken from the undecoded request target so escapes such as
        ``%2F`` reach the upstream as the client sent them.
        """
        raw_path = request.scope.get("raw_path") or quote(request.url.path).encode("ascii")
        # Some servers include the query string in raw_path.
        raw_path = raw_path.split(b"?", 1)[0]
        query = request.scope.get("query_string") or b""
        if query:
            raw_path = raw_path + b"?" + query
        base = httpx.URL(
            scheme=self._settings.upstream_scheme,
            host=self._settings.upstream_host,
        )
        return base.copy_with(raw_path=raw_path)

    async def forward(self, request: Request) -> Response:
        body = await request.body()
        headers = forwardable_headers(request.headers.items(), drop=_REQUEST_DROP)

        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=False,
        ) as client:
            upstream = await client.request(
                request.method,
                self.target_url(request),
                headers=headers,
                content=body,
            )

        response = Response(content=upstream.content, status_code=upstream.status_code)
        for name, value in forwardable_headers(upstream.headers.multi_items(), drop=_RESPONSE_DROP):
            response.headers.append(name, value)
        return response


__all__ = ["UpstreamProxy"]
