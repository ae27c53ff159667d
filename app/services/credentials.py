"""Credential records kept in the key-value store, one per account key."""

from __future__ import annotations

import json
import logging
from typing import Protocol

from pydantic import ValidationError

from app.models.credential import CredentialRecord

logger = logging.getLogger(__name__)

ACCOUNT_KEY_MARKER = "@"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def list_keys(self, *, prefix: str = "") -> list[str]: ...


class AccountNotFoundError(Exception):
    """Raised when no usable credential record exists for an account key."""


def is_account_key(key: str) -> bool:
    return ACCOUNT_KEY_MARKER in key


class CredentialStore:
    """Read and persist ``CredentialRecord`` JSON documents."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def list_account_keys(self) -> list[str]:
        return [key for key in self._store.list_keys() if is_account_key(key)]

    def get_record(self, account_key: str) -> CredentialRecord:
        if not is_account_key(account_key):
            raise AccountNotFoundError(f"Not an account key: {account_key!r}")

        raw = self._store.get(account_key)
        if raw is None:
            raise AccountNotFoundError(f"No credentials stored for {account_key}")
        try:
            return CredentialRecord.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Stored credentials for %s are not valid JSON records", account_key)
            raise AccountNotFoundError(f"Unreadable credentials for {account_key}") from exc

    def save_record(self, account_key: str, record: CredentialRecord) -> None:
        if not is_account_key(account_key):
            raise ValueError(f"Account keys must contain {ACCOUNT_KEY_MARKER!r}")
        self._store.put(account_key, json.dumps(record.model_dump(), ensure_ascii=False))


__all__ = [
    "AccountNotFoundError",
    "CredentialStore",
    "KeyValueStore",
    "is_account_key",
]
