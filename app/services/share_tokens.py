"""Mint share tokens scoped to a display name and usage limits."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from app.clients.oaifree import OaiFreeClient
from app.core.config import ShareTokenSettings

logger = logging.getLogger(__name__)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_register_form(
    display_name: str, access_token: str, options: ShareTokenSettings
) -> Dict[str, str]:
    """Form fields understood by the register endpoint."""
    form = {
        "unique_name": display_name,
        "access_token": access_token,
        "site_limit": options.site_limit,
        "expires_in": str(options.expires_in),
        "gpt35_limit": str(options.gpt35_limit),
        "gpt4_limit": str(options.gpt4_limit),
        "show_conversations": _flag(options.show_conversations),
        "show_userinfo": _flag(options.show_userinfo),
        "reset_limit": _flag(options.reset_limit),
    }
    if options.temporary_chat is not None:
        form["temporary_chat"] = _flag(options.temporary_chat)
    return form


class ShareTokenMinter:
    """Exchange an access token for a share token bound to a display name."""

    def __init__(self, client: OaiFreeClient, defaults: ShareTokenSettings) -> None:
        self._client = client
        self._defaults = defaults

    async def mint(
        self,
        display_name: str,
        access_token: str,
        options: Optional[ShareTokenSettings] = None,
    ) -> str:
        form = build_register_form(display_name, access_token, options or self._defaults)
        share_token = await self._client.register_share_token(form)
        logger.info("Minted share token for %s", display_name)
        return share_token


__all__ = ["ShareTokenMinter", "build_register_form"]
