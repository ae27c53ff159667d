"""HTTP utilities shared by the token service client and the upstream proxy."""

from __future__ import annotations

from typing import Iterable, TypeVar

import httpx
from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)

# RFC 9110 section 7.6.1 connection-specific headers, never forwarded by a proxy.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "proxy-connection",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)


def forwardable_headers(
    headers: Iterable[tuple[str, str]], *, drop: Iterable[str] = ()
) -> list[tuple[str, str]]:
    """Filter hop-by-hop headers (and any names in ``drop``), keeping duplicates."""
    excluded = HOP_BY_HOP_HEADERS | {name.lower() for name in drop}
    return [(name, value) for name, value in headers if name.lower() not in excluded]


def parse_model(response: httpx.Response, model: type[M]) -> M:
    """
    Validate a JSON response body against ``model``.

    Raises ``ValueError`` when the body is not JSON or a required field is
    missing (pydantic's ``ValidationError`` is a ``ValueError``).
    """
    return model.model_validate(response.json())


__all__ = ["HOP_BY_HOP_HEADERS", "forwardable_headers", "parse_model"]
