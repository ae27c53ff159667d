"""
Signed login state passed from the credential form to the account form.

The payload is serialized JSON prefixed with its HMAC-SHA256 signature and
base64url-encoded, so the account selection step can trust who logged in.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from hashlib import sha256
from typing import Any, Dict

_SIGNATURE_SIZE = 32


class InvalidLoginStateError(Exception):
    """Raised when a login state token is malformed or its signature is wrong."""


class LoginStateEncoder:
    """Encode and decode login state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise InvalidLoginStateError("Login state is not valid base64.") from exc

        signature, serialized = decoded[:_SIGNATURE_SIZE], decoded[_SIGNATURE_SIZE:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if len(signature) != _SIGNATURE_SIZE or not hmac.compare_digest(signature, expected_signature):
            raise InvalidLoginStateError("Invalid login state signature.")

        payload = json.loads(serialized)
        if not isinstance(payload, dict):
            raise InvalidLoginStateError("Login state payload must be an object.")
        return payload


__all__ = ["InvalidLoginStateError", "LoginStateEncoder"]
