"""Fetch the Bing image of the day used as the login page background."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class BingImageClient:
    """Look up the current Bing homepage image."""

    _ARCHIVE_URL = "https://www.bing.com/HPImageArchive.aspx"
    _BASE_URL = "https://www.bing.com"

    def __init__(
        self,
        *,
        timeout: float = 5.0,
        market: str = "en-US",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._market = market
        self._transport = transport

    async def image_of_the_day(self) -> Optional[str]:
        """Return an absolute image URL, or ``None`` when it cannot be determined."""
        params = {"format": "js", "idx": 0, "n": 1, "mkt": self._market}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._ARCHIVE_URL, params=params)
            response.raise_for_status()
            images = response.json().get("images") or []
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("Could not load login background image: %s", exc)
            return None

        if not images:
            return None
        if not isinstance(images, list) or not isinstance(images[0], dict):
            logger.warning("Unexpected login background payload: %r", images)
            return None
        path = images[0].get("url")
        if not isinstance(path, str) or not path:
            return None
        return f"{self._BASE_URL}{path}"


__all__ = ["BingImageClient"]
