"""Inspect and seed the key-value store read by the gateway.

Site configuration (``SITE_PASSWORD``, ``ALLOWED_USERS``, ``TURNSTILE_SITE_KEY``,
``YOUR_DOMAIN``, ``TOKEN_PREFIX``, ``DEFAULT_ACCOUNT``) and account credential
records share one store. Account records live under keys containing ``@``.

Example usages::

    python -m scripts.manage_store set ALLOWED_USERS alice,bob
    python -m scripts.manage_store add-account team@example.com \
        --refresh-token rt-123
    python -m scripts.manage_store list --accounts
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable

from app.clients.sqlite_store import SQLiteStore
from app.core.config import get_settings
from app.models.credential import CredentialRecord
from app.services.credentials import AccountNotFoundError, CredentialStore, is_account_key

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_USAGE_ERROR = 2


def _get(store: SQLiteStore, key: str) -> int:
    value = store.get(key)
    if value is None:
        print(f"Key {key!r} is not set.", file=sys.stderr)
        return EXIT_NOT_FOUND
    print(value)
    return EXIT_OK


def _set(store: SQLiteStore, key: str, value: str) -> int:
    if is_account_key(key):
        print(
            f"{key!r} looks like an account key; use 'add-account' to store credentials.",
            file=sys.stderr,
        )
        return EXIT_USAGE_ERROR
    store.put(key, value)
    print(f"Stored {key}.")
    return EXIT_OK


def _list(store: SQLiteStore, accounts_only: bool) -> int:
    keys = store.list_keys()
    if accounts_only:
        keys = [key for key in keys if is_account_key(key)]
    for key in keys:
        print(key)
    return EXIT_OK


def _add_account(
    store: SQLiteStore, account_key: str, refresh_token: str, access_token: str
) -> int:
    if not is_account_key(account_key):
        print(f"Account keys must contain '@': {account_key!r}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    credentials = CredentialStore(store)
    try:
        record = credentials.get_record(account_key)
    except AccountNotFoundError:
        record = CredentialRecord()

    update: dict[str, str] = {}
    if refresh_token:
        update["refresh_token"] = refresh_token
    if access_token:
        update["access_token"] = access_token
    credentials.save_record(account_key, record.model_copy(update=update))
    print(f"Stored credentials for {account_key}.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Read and write gateway configuration and account records."
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="SQLite store path (default: STORE_DB_PATH from the environment).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    get_parser = subparsers.add_parser("get", help="Print a stored value.")
    get_parser.add_argument("key")

    set_parser = subparsers.add_parser("set", help="Store a configuration value.")
    set_parser.add_argument("key")
    set_parser.add_argument("value")

    list_parser = subparsers.add_parser("list", help="List stored keys.")
    list_parser.add_argument(
        "--accounts",
        action="store_true",
        help="Only list account keys.",
    )

    account_parser = subparsers.add_parser(
        "add-account",
        help="Create or update an account credential record.",
    )
    account_parser.add_argument("account_key")
    account_parser.add_argument("--refresh-token", default="")
    account_parser.add_argument("--access-token", default="")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "add-account" and not (args.refresh_token or args.access_token):
        print("Provide --refresh-token and/or --access-token.", file=sys.stderr)
        return EXIT_USAGE_ERROR

    store = SQLiteStore(args.db_path or get_settings().store_db_path)

    command: str = args.command
    handlers: dict[str, Callable[[], int]] = {
        "get": lambda: _get(store, args.key),
        "set": lambda: _set(store, args.key, args.value),
        "list": lambda: _list(store, args.accounts),
        "add-account": lambda: _add_account(
            store, args.account_key, args.refresh_token, args.access_token
        ),
    }
    return handlers[command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
