"""OAuth client coordinating the authorization code flow.

Responsibilities:
- Build authorization URLs carrying an encrypted, single-use state
- Validate callback state (consume first, decrypt second)
- Exchange authorization codes for tokens
- Fetch user profile data with the issued token
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from authlib.common.errors import AuthlibBaseError

from oauthflow.core.exceptions import (
    ConfigurationError,
    DecryptionError,
    DeserializationError,
    ExchangeError,
    NetworkError,
    StateNotFoundError,
    StorageError,
)

from .exchange import AuthlibTokenExchanger, TokenExchanger
from .providers import OAuthProvider
from .state import VALID_KEY_SIZES, InMemoryStateLedger, StateCodec, StateLedger, state_fingerprint
from .token import ClientCredentials, OAuthToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AuthorizationRequest:
    """Result of starting a flow."""

    url: str
    state: str
    caller_token: str


def _build_url_with_params(base_url: str, params: dict[str, str]) -> str:
    """Append query parameters to an existing URL safely."""
    parsed = urlparse(base_url)
    existing_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    existing_params.update(params)
    new_query = urlencode(existing_params)
    return urlunparse(parsed._replace(query=new_query))


class OAuthClient(Generic[T]):
    """
    OAuth 2.0 authorization code flow client for one provider.

    A single instance is shared across concurrent flows. The encryption key
    and credentials are read-only after construction; the state ledger is the
    only shared mutable collaborator and synchronizes itself.
    """

    def __init__(
        self,
        provider: OAuthProvider,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        encryption_key: bytes | str,
        payload_type: Any = Any,
        ledger: StateLedger | None = None,
        exchanger: TokenExchanger | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize OAuth client.

        Args:
            provider: Provider descriptor (shared, not copied)
            client_id: OAuth client ID from provider
            client_secret: OAuth client secret from provider
            redirect_url: Callback URL registered with the provider
            encryption_key: State encryption key, 16, 24 or 32 bytes
            payload_type: Type of the payload attached to each state
            ledger: State ledger; defaults to an in-memory ledger
            exchanger: OAuth2 protocol implementation; defaults to authlib
            timeout: Default timeout in seconds for provider requests

        Raises:
            ConfigurationError: If any argument is missing or invalid
        """
        if provider is None:
            raise ConfigurationError("provider", "cannot be None")
        if not client_id:
            raise ConfigurationError("client_id", "cannot be empty")
        if not client_secret:
            raise ConfigurationError("client_secret", "cannot be empty")
        if not redirect_url:
            raise ConfigurationError("redirect_url", "cannot be empty")

        key = encryption_key.encode("utf-8") if isinstance(encryption_key, str) else bytes(encryption_key or b"")
        if len(key) not in VALID_KEY_SIZES:
            raise ConfigurationError(
                "encryption_key",
                f"must be one of {VALID_KEY_SIZES} bytes, got {len(key)}",
            )

        self._provider = provider
        self._credentials = ClientCredentials(
            client_id=client_id,
            client_secret=client_secret,
            redirect_url=redirect_url,
        )
        self._codec: StateCodec[T] = StateCodec(key, payload_type)
        self._ledger: StateLedger = ledger if ledger is not None else InMemoryStateLedger()
        self._exchanger: TokenExchanger = exchanger if exchanger is not None else AuthlibTokenExchanger()
        self._timeout = timeout

    @property
    def provider(self) -> OAuthProvider:
        return self._provider

    @property
    def credentials(self) -> ClientCredentials:
        return self._credentials

    @property
    def state_ledger(self) -> StateLedger:
        return self._ledger

    def set_state_ledger(self, ledger: StateLedger) -> None:
        """
        Replace the state ledger.

        Call before any flow is in flight: states issued by the previous
        ledger cannot be validated against the new one.
        """
        if ledger is None:
            raise ConfigurationError("ledger", "cannot be None")
        self._ledger = ledger
        logger.info(f"State ledger replaced with {type(ledger).__name__}")

    def create_authorization_request(self, payload: T | None = None, caller_token: str = "") -> AuthorizationRequest:
        """
        Start a flow: encrypt state, record it, and build the authorization URL.

        Args:
            payload: Application data to recover on callback
            caller_token: CSRF token; a random UUID is used when empty

        Returns:
            AuthorizationRequest with URL, opaque state and caller token

        Raises:
            SerializationError: If payload cannot be serialized
            EncryptionError: If state encryption fails
            StorageError: If the ledger refuses the state (no URL is returned)
        """
        if not caller_token:
            caller_token = str(uuid.uuid4())

        opaque_state = self._codec.encode(caller_token, payload)

        if not self._ledger.issue(opaque_state):
            logger.error(f"State ledger refused state | provider={self._provider.name}")
            raise StorageError(type(self._ledger).__name__)

        params = {
            "client_id": self._credentials.client_id,
            "redirect_uri": self._credentials.redirect_url,
            "response_type": "code",
        }
        scopes = self._provider.scopes
        if scopes:
            params["scope"] = " ".join(scopes)
        params.update({
            "state": opaque_state,
            "access_type": "offline",  # Request refresh token
            "prompt": "consent",  # Force consent to get refresh token every time
        })

        url = _build_url_with_params(self._provider.authorization_endpoint, params)
        logger.info(
            f"Authorization URL generated | provider={self._provider.name} "
            f"state={state_fingerprint(opaque_state)[:12]}"
        )
        return AuthorizationRequest(url=url, state=opaque_state, caller_token=caller_token)

    def generate_authorization_url(self, payload: T | None = None, caller_token: str = "") -> str:
        """Start a flow and return only the authorization URL."""
        return self.create_authorization_request(payload, caller_token).url

    def validate_state(self, opaque_state: str) -> tuple[str, T]:
        """
        Validate callback state and recover the caller token and payload.

        The state is consumed before it is decrypted, so an unknown state is
        never run through the cipher. A state can be validated only once.

        Raises:
            StateNotFoundError: If state was never issued, already used, expired or empty
            DecryptionError: If state fails authentication
            DeserializationError: If payload does not match payload_type
        """
        if not opaque_state or not self._ledger.consume(opaque_state):
            logger.info(f"OAuth state not found | provider={self._provider.name}")
            raise StateNotFoundError()

        try:
            return self._codec.decode(opaque_state)
        except (DecryptionError, DeserializationError) as e:
            # Expected for tampered or foreign state; not an incident
            logger.info(f"OAuth state rejected | provider={self._provider.name} code={e.code}")
            raise

    def exchange_code(self, code: str, timeout: float | None = None) -> OAuthToken:
        """
        Exchange authorization code for a token.

        Raises:
            ExchangeTimeoutError: If the token endpoint did not answer in time
            ExchangeError: For any other exchange failure
        """
        try:
            token = self._exchanger.exchange(
                self._credentials,
                self._provider.token_endpoint,
                code,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except ExchangeError:
            raise
        except Exception as e:
            logger.error(f"Token exchange failed | provider={self._provider.name} error={type(e).__name__}")
            raise ExchangeError(str(e), provider=self._provider.name) from e
        logger.info(
            f"Token exchange SUCCESS | provider={self._provider.name} "
            f"refresh_token={'yes' if token.refresh_token else 'no'}"
        )
        return token

    def fetch_user_info(self, token: OAuthToken, timeout: float | None = None) -> dict[str, Any]:
        """
        Fetch user profile with the given token.

        Raises:
            NetworkTimeoutError: If the provider did not answer in time
            NetworkError: If the provider could not be reached or the token is unusable
            HTTPStatusError: If the provider answered with a non-2xx status
            DecodeError: If the response is not a JSON object
        """
        effective_timeout = timeout if timeout is not None else self._timeout
        with self._exchanger.authorized_client(self._credentials, token, timeout=effective_timeout) as http_client:
            try:
                return self._provider.fetch_user_info(http_client, timeout=effective_timeout)
            except AuthlibBaseError as e:
                # Raised before sending when the token is missing or expired
                raise NetworkError(f"access token unusable: {e.error}") from e
