"""OAuth 2.0 provider descriptor.

Describes one identity provider: its endpoints, the scopes to request and
how to read the user profile. Everything except the scope list is fixed at
construction.
"""
import logging
import threading
from typing import Any, Iterable

import httpx

from oauthflow.core.exceptions import (
    ConfigurationError,
    DecodeError,
    HTTPStatusError,
    NetworkError,
    NetworkTimeoutError,
)

logger = logging.getLogger(__name__)


def _unique_non_empty(scopes: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for scope in scopes:
        if not scope or scope in seen:
            continue
        seen.add(scope)
        result.append(scope)
    return result


class OAuthProvider:
    """
    OAuth 2.0 provider descriptor.

    Shared by every flow issued from a client, so the scope list is
    copied on read and replaced whole on write.
    """

    def __init__(
        self,
        name: str,
        authorization_endpoint: str,
        token_endpoint: str,
        user_info_endpoint: str,
        scopes: list[str] | None = None,
    ):
        """
        Initialize OAuth provider.

        Args:
            name: Provider identifier (e.g., "google")
            authorization_endpoint: Provider's authorization endpoint
            token_endpoint: Provider's token exchange endpoint
            user_info_endpoint: Provider's user info endpoint
            scopes: Scopes to request; None or empty is allowed

        Raises:
            ConfigurationError: If a field is empty or a scope at some index is empty
        """
        for field, value in (
            ("name", name),
            ("authorization_endpoint", authorization_endpoint),
            ("token_endpoint", token_endpoint),
            ("user_info_endpoint", user_info_endpoint),
        ):
            if not value:
                raise ConfigurationError(field, "cannot be empty")

        initial = list(scopes or [])
        for index, scope in enumerate(initial):
            if not scope:
                raise ConfigurationError(f"scopes[{index}]", f"scope at index {index} cannot be empty")

        self._name = name
        self._authorization_endpoint = authorization_endpoint
        self._token_endpoint = token_endpoint
        self._user_info_endpoint = user_info_endpoint
        self._scopes = _unique_non_empty(initial)
        self._scopes_lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def authorization_endpoint(self) -> str:
        return self._authorization_endpoint

    @property
    def token_endpoint(self) -> str:
        return self._token_endpoint

    @property
    def user_info_endpoint(self) -> str:
        return self._user_info_endpoint

    @property
    def scopes(self) -> list[str]:
        """Scopes requested during authorization (a fresh copy each call)."""
        with self._scopes_lock:
            return list(self._scopes)

    def set_scopes(self, scopes: Iterable[str]) -> None:
        """
        Replace the scope list.

        Empty strings and duplicates are dropped silently. Changes apply to
        the next authorization URL generated.
        """
        sanitized = _unique_non_empty(scopes or [])
        with self._scopes_lock:
            self._scopes = sanitized
        logger.debug(f"Updated scopes for {self._name}: {' '.join(sanitized)}")

    def fetch_user_info(self, http_client: httpx.Client, timeout: float | None = None) -> dict[str, Any]:
        """
        Fetch user information with a bearer-authenticated client.

        Args:
            http_client: HTTP client that already carries the access token
            timeout: Optional per-request timeout in seconds

        Returns:
            User profile information

        Raises:
            NetworkTimeoutError: If the request timed out
            NetworkError: If the provider could not be reached
            HTTPStatusError: If the provider answered with a non-2xx status
            DecodeError: If the body is empty or not a JSON object
        """
        request_kwargs: dict[str, Any] = {}
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        try:
            response = http_client.get(self._user_info_endpoint, **request_kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"User info request timed out | provider={self._name}")
            raise NetworkTimeoutError(url=self._user_info_endpoint) from e
        except httpx.RequestError as e:
            logger.error(f"User info request failed: {str(e)}")
            raise NetworkError(str(e), url=self._user_info_endpoint) from e

        if not response.is_success:
            logger.error(
                f"User info fetch failed | provider={self._name} status={response.status_code}"
            )
            raise HTTPStatusError(response.status_code, url=self._user_info_endpoint)

        if not response.content:
            raise DecodeError("empty response body")
        try:
            user_info = response.json()
        except ValueError as e:
            raise DecodeError("response is not valid JSON") from e
        if not isinstance(user_info, dict):
            raise DecodeError(f"expected JSON object, got {type(user_info).__name__}")

        return user_info

    def __repr__(self) -> str:
        return f"OAuthProvider(name={self._name!r}, scopes={self.scopes!r})"
