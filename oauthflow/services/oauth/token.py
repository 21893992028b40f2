"""OAuth token value types."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class ClientCredentials:
    """Client registration details sent to the token endpoint."""

    client_id: str
    client_secret: str = field(repr=False)
    redirect_url: str


@dataclass(frozen=True)
class OAuthToken:
    """Token issued by the provider's token endpoint."""

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    refresh_token: str | None = field(default=None, repr=False)
    expires_at: datetime | None = None
    scopes: list[str] | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_response(cls, token_response: dict[str, Any]) -> OAuthToken:
        """
        Build a token from a token endpoint response.

        Accepts either ``expires_at`` (epoch seconds) or ``expires_in``
        (seconds from now).

        Raises:
            KeyError: If the response has no access_token
        """
        access_token = token_response.get("access_token")
        if not access_token:
            raise KeyError("access_token")

        expires_at = None
        if token_response.get("expires_at"):
            expires_at = datetime.fromtimestamp(float(token_response["expires_at"]), tz=timezone.utc)
        elif token_response.get("expires_in"):
            expires_in = float(token_response["expires_in"])
            expires_at = datetime.now(timezone.utc) + dt.timedelta(seconds=expires_in)

        scopes = None
        if "scope" in token_response:
            scope = token_response["scope"]
            scopes = scope.split() if isinstance(scope, str) else list(scope)

        return cls(
            access_token=access_token,
            token_type=token_response.get("token_type") or "Bearer",
            refresh_token=token_response.get("refresh_token"),
            expires_at=expires_at,
            scopes=scopes,
            raw=dict(token_response),
        )

    def is_expired(self, leeway: int = 0) -> bool:
        """Return True if the token expires within ``leeway`` seconds."""
        if self.expires_at is None:
            return False
        return self.expires_at <= datetime.now(timezone.utc) + dt.timedelta(seconds=leeway)

    def to_dict(self) -> dict[str, Any]:
        """Token in the RFC 6749 response shape used by authlib."""
        data: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
        }
        if self.refresh_token:
            data["refresh_token"] = self.refresh_token
        if self.expires_at is not None:
            data["expires_at"] = int(self.expires_at.timestamp())
        if self.scopes is not None:
            data["scope"] = " ".join(self.scopes)
        return data
