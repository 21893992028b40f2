"""Authorization code exchange and authenticated transports.

The OAuth2 wire protocol is delegated to authlib. OAuthClient only needs
two things from it, captured by the TokenExchanger protocol: turn a code
into a token, and build an HTTP client that sends that token.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.httpx_client import OAuth2Client

from oauthflow.core.exceptions import ExchangeError, ExchangeTimeoutError

from .token import ClientCredentials, OAuthToken

logger = logging.getLogger(__name__)


class TokenExchanger(Protocol):
    """Interface for the external OAuth2 protocol implementation."""

    def exchange(
        self,
        credentials: ClientCredentials,
        token_endpoint: str,
        code: str,
        timeout: float | None = None,
    ) -> OAuthToken:  # pragma: no cover - protocol stub
        ...

    def authorized_client(
        self,
        credentials: ClientCredentials,
        token: OAuthToken,
        timeout: float | None = None,
    ) -> httpx.Client:  # pragma: no cover - protocol stub
        ...


class AuthlibTokenExchanger:
    """
    TokenExchanger backed by authlib's httpx OAuth2Client.

    Extra keyword arguments (``transport``, ``verify``, ``proxy``...) are
    passed to every underlying httpx client.
    """

    def __init__(self, **client_kwargs: Any):
        self._client_kwargs = client_kwargs

    def _session(self, credentials: ClientCredentials, timeout: float | None, **kwargs: Any) -> OAuth2Client:
        options = dict(self._client_kwargs)
        if timeout is not None:
            options["timeout"] = timeout
        return OAuth2Client(
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            redirect_uri=credentials.redirect_url,
            **kwargs,
            **options,
        )

    def exchange(
        self,
        credentials: ClientCredentials,
        token_endpoint: str,
        code: str,
        timeout: float | None = None,
    ) -> OAuthToken:
        """
        Exchange authorization code for a token.

        Raises:
            ExchangeTimeoutError: If the token endpoint did not answer in time
            ExchangeError: For any other failure
        """
        if not code:
            raise ExchangeError("authorization code is empty")

        with self._session(credentials, timeout) as session:
            try:
                token_response = session.fetch_token(token_endpoint, code=code)
            except httpx.TimeoutException as e:
                logger.error(f"Token exchange timed out | endpoint={token_endpoint}")
                raise ExchangeTimeoutError() from e
            except httpx.HTTPError as e:
                logger.error(f"Token exchange request failed: {str(e)}")
                raise ExchangeError(str(e)) from e
            except AuthlibBaseError as e:
                logger.error(f"Token exchange rejected by provider | error={e.error}")
                raise ExchangeError(e.description or e.error) from e
            except ValueError as e:
                # Non-JSON token response
                raise ExchangeError("invalid token response") from e

        try:
            return OAuthToken.from_response(dict(token_response))
        except (KeyError, TypeError, ValueError) as e:
            raise ExchangeError("no access token in response") from e

    def authorized_client(
        self,
        credentials: ClientCredentials,
        token: OAuthToken,
        timeout: float | None = None,
    ) -> httpx.Client:
        """Build an httpx client that sends ``token`` as a bearer credential."""
        return self._session(credentials, timeout, token=token.to_dict())
