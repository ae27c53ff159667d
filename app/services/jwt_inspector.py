"""
Read the payload of a JWT bearer token without verifying its signature.

The tokens inspected here were issued by the trusted token service, so only
the expiry claim matters. Anything that cannot be decoded counts as expired.
"""

from __future__ import annotations

import base64
import json
import time
from typing import Any, Dict, Optional


class DecodeError(Exception):
    """Raised when a token payload cannot be decoded."""


def _add_base64_padding(segment: str) -> str:
    return segment + "=" * (-len(segment) % 4)


def decode_payload(token: str) -> Dict[str, Any]:
    """
    Decode the middle segment of ``token`` into a dict.

    Raises:
        DecodeError: If the token has no payload segment or the segment is not
            base64url-encoded JSON object.
    """
    if not isinstance(token, str):
        raise DecodeError("Token must be a string.")

    parts = token.split(".")
    if len(parts) < 2 or not parts[1]:
        raise DecodeError("Token has no payload segment.")

    try:
        raw = base64.urlsafe_b64decode(_add_base64_padding(parts[1]))
        payload = json.loads(raw.decode("utf-8"))
    except ValueError as exc:
        raise DecodeError(f"Could not decode payload: {exc}") from exc

    if not isinstance(payload, dict):
        raise DecodeError("Token payload is not a JSON object.")
    return payload


def expires_at(token: str) -> Optional[int]:
    """Return the ``exp`` claim in Unix seconds, or ``None`` if absent or unreadable."""
    try:
        exp = decode_payload(token).get("exp")
    except DecodeError:
        return None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return int(exp)


def is_expired(token: str, *, now: Optional[float] = None) -> bool:
    """True when ``exp`` lies strictly in the past or cannot be determined."""
    exp = expires_at(token)
    if exp is None:
        return True
    current = int(time.time() if now is None else now)
    return exp < current


__all__ = ["DecodeError", "decode_payload", "expires_at", "is_expired"]
