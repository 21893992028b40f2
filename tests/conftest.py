from __future__ import annotations

import os

import httpx
import pytest

# Settings are resolved from the environment; pin the test profile first.
os.environ.setdefault("ENV", "test")

from oauthflow.core.config import get_settings  # noqa: E402
from oauthflow.services.oauth import OAuthClient, OAuthProvider, OAuthToken  # noqa: E402

TEST_KEY = "123456789012345678901234"


class FakeExchanger:
    """TokenExchanger double that records calls and serves canned responses."""

    def __init__(self, token: OAuthToken | None = None, user_info: dict | None = None, error: Exception | None = None):
        self.token = token or OAuthToken(access_token="access-123", refresh_token="refresh-456")
        self.user_info = user_info if user_info is not None else {"sub": "42", "email": "u1@example.com"}
        self.error = error
        self.exchange_calls: list[tuple] = []

    def exchange(self, credentials, token_endpoint, code, timeout=None):
        self.exchange_calls.append((credentials, token_endpoint, code, timeout))
        if self.error is not None:
            raise self.error
        return self.token

    def authorized_client(self, credentials, token, timeout=None):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == f"Bearer {token.access_token}"
            return httpx.Response(200, json=self.user_info)

        return httpx.Client(
            transport=httpx.MockTransport(handler),
            headers={"Authorization": f"Bearer {token.access_token}"},
        )


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def provider() -> OAuthProvider:
    return OAuthProvider(
        name="test",
        authorization_endpoint="https://ex/auth",
        token_endpoint="https://ex/token",
        user_info_endpoint="https://ex/info",
        scopes=["read"],
    )


@pytest.fixture
def exchanger() -> FakeExchanger:
    return FakeExchanger()


@pytest.fixture
def oauth_client(provider, exchanger) -> OAuthClient:
    return OAuthClient(
        provider=provider,
        client_id="client-id",
        client_secret="client-secret",
        redirect_url="https://app.example.com/callback",
        encryption_key=TEST_KEY,
        exchanger=exchanger,
    )
