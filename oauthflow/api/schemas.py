from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class OAuthSessionData(BaseModel):
    """Carried inside the encrypted state from login to callback."""

    return_to: str = "/"
    source: str = "web"
    issued_at: datetime


class OAuthProviderOut(BaseModel):
    name: str
    scopes: list[str]


class OAuthCallbackOut(BaseModel):
    provider: str
    user: dict[str, Any]
    return_to: str
    token_type: str
    has_refresh_token: bool = Field(description="Whether the provider issued a refresh token")
