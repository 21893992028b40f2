"""OAuth 2.0 authorization code flow client.

Builds authorization URLs, protects the round trip through the provider
with an encrypted single-use state, exchanges codes for tokens and fetches
user profiles.

Providers:
- Google (presets with extended service scopes)
- Any OAuth 2.0 provider via OAuthProvider
"""
from .callback import CallbackParams, parse_callback
from .client import AuthorizationRequest, OAuthClient
from .exchange import AuthlibTokenExchanger, TokenExchanger
from .factory import create_oauth_client
from .flow import FlowStage, OAuthFlow
from .providers import (
    OAuthProvider,
    add_google_scopes,
    create_google_provider,
)
from .state import (
    InMemoryStateLedger,
    RedisStateLedger,
    StateCodec,
    StateLedger,
    decrypt_state,
    encrypt_state,
)
from .token import ClientCredentials, OAuthToken

__all__ = [
    # Client
    "OAuthClient",
    "AuthorizationRequest",
    "OAuthFlow",
    "FlowStage",
    # Callback
    "CallbackParams",
    "parse_callback",
    # Exchange
    "TokenExchanger",
    "AuthlibTokenExchanger",
    "ClientCredentials",
    "OAuthToken",
    # Providers
    "OAuthProvider",
    "create_google_provider",
    "add_google_scopes",
    # State
    "StateCodec",
    "StateLedger",
    "InMemoryStateLedger",
    "RedisStateLedger",
    "encrypt_state",
    "decrypt_state",
    # Factory
    "create_oauth_client",
]
