"""Factory function for creating a configured OAuth client."""
import logging
from typing import Any

import redis

from oauthflow.core.config import BaseAppSettings, get_settings
from oauthflow.core.exceptions import ConfigurationError

from .client import OAuthClient
from .providers import OAuthProvider, create_google_provider
from .state import InMemoryStateLedger, RedisStateLedger, StateLedger

logger = logging.getLogger(__name__)


def create_provider(settings: BaseAppSettings) -> OAuthProvider:
    """Build the provider descriptor selected by OAUTH_PROVIDER."""
    if settings.OAUTH_PROVIDER == "google":
        return create_google_provider(settings.OAUTH_SCOPES or None)

    return OAuthProvider(
        name=settings.OAUTH_PROVIDER_NAME or "",
        authorization_endpoint=settings.OAUTH_AUTHORIZATION_ENDPOINT or "",
        token_endpoint=settings.OAUTH_TOKEN_ENDPOINT or "",
        user_info_endpoint=settings.OAUTH_USER_INFO_ENDPOINT or "",
        scopes=settings.OAUTH_SCOPES,
    )


def create_state_ledger(settings: BaseAppSettings, redis_client: redis.Redis | None = None) -> StateLedger:
    """Build the state ledger selected by OAUTH_STATE_BACKEND."""
    if settings.OAUTH_STATE_BACKEND == "redis":
        if redis_client is not None:
            return RedisStateLedger(redis_client, ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS)
        return RedisStateLedger.from_url(settings.REDIS_URL, ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS)
    return InMemoryStateLedger(ttl_seconds=settings.OAUTH_STATE_TTL_SECONDS)


def create_oauth_client(
    settings: BaseAppSettings | None = None,
    payload_type: Any = Any,
    redis_client: redis.Redis | None = None,
) -> OAuthClient:
    """
    Factory function to create a configured OAuth client.

    Args:
        settings: Settings to read; defaults to get_settings()
        payload_type: Type of the payload attached to each state
        redis_client: Existing Redis connection for the redis backend

    Returns:
        Configured OAuthClient instance

    Raises:
        ConfigurationError: If credentials, key or provider settings are missing
    """
    settings = settings or get_settings()

    if not settings.OAUTH_STATE_KEY:
        raise ConfigurationError("OAUTH_STATE_KEY")

    provider = create_provider(settings)
    client = OAuthClient(
        provider=provider,
        client_id=settings.OAUTH_CLIENT_ID or "",
        client_secret=settings.OAUTH_CLIENT_SECRET or "",
        redirect_url=settings.OAUTH_REDIRECT_URL,
        encryption_key=settings.OAUTH_STATE_KEY,
        payload_type=payload_type,
        ledger=create_state_ledger(settings, redis_client),
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    logger.info(
        f"OAuth client ready | provider={provider.name} "
        f"state_backend={settings.OAUTH_STATE_BACKEND}"
    )
    return client
