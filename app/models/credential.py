"""
Domain model for persisted account credentials.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CredentialRecord(BaseModel):
    """Token pair stored as JSON under an account key such as ``user@example.com``."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field("", description="Short-lived bearer token; may be empty.")
    refresh_token: str = Field("", description="Long-lived token used to mint access tokens.")

    @field_validator("access_token", "refresh_token", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


__all__ = ["CredentialRecord"]
