"""
OAuth 2.0 Login Routes.

Endpoints:
- GET  /auth/oauth/provider - Describe the configured provider
- GET  /auth/oauth/login    - Initiate OAuth flow
- GET  /auth/oauth/callback - Handle OAuth callback

Only handles the HTTP layer; flow logic lives in OAuthClient.
"""

import logging
from datetime import datetime, timezone
from urllib.parse import unquote, urlparse

from fastapi import APIRouter, Query, Request
from fastapi.responses import RedirectResponse

from oauthflow.api.schemas import OAuthCallbackOut, OAuthProviderOut, OAuthSessionData
from oauthflow.services.oauth import OAuthClient, OAuthFlow, parse_callback

logger = logging.getLogger(__name__)


def _safe_return_to(return_to: str | None) -> str:
    """Allow only same-site relative paths to avoid open redirects."""
    if not return_to or not return_to.startswith("/"):
        return "/"
    # Browsers read "\" as "/", so "/\host" is protocol-relative like "//host"
    normalized = unquote(return_to).replace("\\", "/")
    parsed = urlparse(normalized)
    if normalized.startswith("//") or parsed.scheme or parsed.netloc:
        return "/"
    return return_to


def create_oauth_router(client: OAuthClient[OAuthSessionData]) -> APIRouter:
    """
    Build the OAuth router bound to one client.

    Args:
        client: OAuthClient whose payload type is OAuthSessionData

    Returns:
        APIRouter mounted under /auth/oauth
    """
    router = APIRouter(prefix="/auth/oauth", tags=["oauth"])

    @router.get("/provider", response_model=OAuthProviderOut)
    def oauth_provider() -> dict:
        provider = client.provider
        return {"name": provider.name, "scopes": provider.scopes}

    @router.get("/login")
    def oauth_login(
        return_to: str | None = Query(None, description="Path to redirect to after auth"),
        source: str = Query("web", description="Origin of the login request"),
    ) -> RedirectResponse:
        """
        Initiate OAuth login flow.

        Redirects user to the provider's authorization page with the
        session data encrypted into the state parameter.

        Example:
            GET /auth/oauth/login?return_to=/dashboard
        """
        session = OAuthSessionData(
            return_to=_safe_return_to(return_to),
            source=source,
            issued_at=datetime.now(timezone.utc),
        )
        auth_url = client.generate_authorization_url(session)

        logger.info(f"Initiating OAuth login with {client.provider.name}")
        return RedirectResponse(url=auth_url)

    @router.get("/callback", response_model=OAuthCallbackOut)
    def oauth_callback(request: Request) -> dict:
        """
        Handle OAuth provider callback.

        Completes OAuth flow:
        1. Validates and consumes the state
        2. Exchanges code for tokens
        3. Fetches user info

        Example:
            GET /auth/oauth/callback?code=4/xxx&state=v1.abc
        """
        callback = parse_callback(str(request.url))
        flow = OAuthFlow.resume(client)
        user_info = flow.complete(callback)

        logger.info(f"OAuth authentication successful for {client.provider.name}")
        return {
            "provider": client.provider.name,
            "user": user_info,
            "return_to": flow.payload.return_to if flow.payload else "/",
            "token_type": flow.token.token_type,
            "has_refresh_token": bool(flow.token.refresh_token),
        }

    return router
