"""Parsing of the provider's redirect back to the application."""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

from oauthflow.core.exceptions import AuthorizationDeniedError, CallbackError


@dataclass(frozen=True)
class CallbackParams:
    """Values the provider echoes back on the redirect URL."""

    code: str
    state: str


def parse_callback(url_or_query: str) -> CallbackParams:
    """
    Extract ``code`` and ``state`` from a callback URL or raw query string.

    Args:
        url_or_query: Full redirect URL, or only its query string

    Returns:
        CallbackParams with code and opaque state

    Raises:
        AuthorizationDeniedError: If the provider sent an ``error`` parameter
        CallbackError: If code or state is missing
    """
    query = urlparse(url_or_query).query if "?" in url_or_query else url_or_query.lstrip("?")
    params = {k: v[0] for k, v in parse_qs(query, keep_blank_values=True).items()}

    if params.get("error"):
        raise AuthorizationDeniedError(params["error"], params.get("error_description"))

    missing = [name for name in ("code", "state") if not params.get(name)]
    if missing:
        raise CallbackError(missing)

    return CallbackParams(code=params["code"], state=params["state"])
