"""
Keep account access tokens valid, refreshing them on demand.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import DefaultDict

from app.clients.oaifree import OaiFreeClient, RefreshError
from app.services.credentials import CredentialStore
from app.services.jwt_inspector import is_expired

logger = logging.getLogger(__name__)


class TokenRefresher:
    """Return a valid access token per account, refreshing at most once at a time.

    Concurrent callers for the same account share one refresh: the first
    caller refreshes under the account's lock, later callers re-read the
    record once they acquire it and find the new token already stored.
    """

    def __init__(self, store: CredentialStore, client: OaiFreeClient) -> None:
        self._store = store
        self._client = client
        self._locks: DefaultDict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_valid_token(self, account_key: str) -> str:
        record = self._store.get_record(account_key)
        if record.access_token and not is_expired(record.access_token):
            return record.access_token

        async with self._locks[account_key]:
            return await self._refresh_locked(account_key)

    async def _refresh_locked(self, account_key: str) -> str:
        record = self._store.get_record(account_key)
        if record.access_token and not is_expired(record.access_token):
            return record.access_token

        if not record.refresh_token:
            raise RefreshError("No refresh token stored for this account")

        logger.info("Refreshing access token for %s", account_key)
        access_token = await self._client.refresh_access_token(record.refresh_token)

        updated = record.model_copy(update={"access_token": access_token})
        self._store.save_record(account_key, updated)
        return access_token


__all__ = ["TokenRefresher"]
