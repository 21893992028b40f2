"""Tests for the OAuth client orchestrator."""
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from conftest import TEST_KEY, FakeExchanger
from oauthflow.core.exceptions import (
    ConfigurationError,
    DecryptionError,
    ExchangeError,
    StateNotFoundError,
    StorageError,
)
from oauthflow.services.oauth import InMemoryStateLedger, OAuthClient, OAuthProvider, OAuthToken
from oauthflow.services.oauth.state import encrypt_state


def _state_from(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


def _make_client(provider, **overrides) -> OAuthClient:
    kwargs = {
        "provider": provider,
        "client_id": "client-id",
        "client_secret": "client-secret",
        "redirect_url": "https://app.example.com/callback",
        "encryption_key": TEST_KEY,
        "exchanger": FakeExchanger(),
    }
    kwargs.update(overrides)
    return OAuthClient(**kwargs)


class TestConstruction:
    @pytest.mark.parametrize("length", [16, 24, 32])
    def test_valid_key_lengths(self, provider, length):
        _make_client(provider, encryption_key="k" * length)

    @pytest.mark.parametrize("length", [0, 15, 23, 25, 31, 33])
    def test_invalid_key_lengths(self, provider, length):
        with pytest.raises(ConfigurationError) as exc_info:
            _make_client(provider, encryption_key="k" * length)
        assert exc_info.value.parameter == "encryption_key"

    def test_bytes_key(self, provider):
        _make_client(provider, encryption_key=b"\x00" * 32)

    @pytest.mark.parametrize("field", ["client_id", "client_secret", "redirect_url"])
    def test_empty_field_names_the_field(self, provider, field):
        with pytest.raises(ConfigurationError) as exc_info:
            _make_client(provider, **{field: ""})
        assert exc_info.value.parameter == field

    def test_missing_provider(self):
        with pytest.raises(ConfigurationError) as exc_info:
            _make_client(None)
        assert exc_info.value.parameter == "provider"

    def test_default_ledger_is_in_memory(self, oauth_client):
        assert isinstance(oauth_client.state_ledger, InMemoryStateLedger)

    def test_secret_not_in_credentials_repr(self, oauth_client):
        assert "client-secret" not in repr(oauth_client.credentials)


class TestAuthorizationUrl:
    def test_url_contains_protocol_parameters(self, oauth_client):
        url = oauth_client.generate_authorization_url({"user": "u1"})
        parsed = urlparse(url)
        params = parse_qs(parsed.query)

        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://ex/auth"
        assert params["client_id"] == ["client-id"]
        assert params["redirect_uri"] == ["https://app.example.com/callback"]
        assert params["response_type"] == ["code"]
        assert params["scope"] == ["read"]
        assert params["access_type"] == ["offline"]
        assert params["prompt"] == ["consent"]
        assert params["state"][0].startswith("v1.")

    def test_scope_omitted_when_provider_has_none(self, provider):
        provider.set_scopes([])
        params = parse_qs(urlparse(_make_client(provider).generate_authorization_url()).query)
        assert "scope" not in params

    def test_multiple_scopes_are_space_separated(self, provider):
        provider.set_scopes(["openid", "email"])
        params = parse_qs(urlparse(_make_client(provider).generate_authorization_url()).query)
        assert params["scope"] == ["openid email"]

    def test_existing_query_parameters_are_preserved(self):
        provider = OAuthProvider(
            name="tenant",
            authorization_endpoint="https://ex/auth?tenant=acme",
            token_endpoint="https://ex/token",
            user_info_endpoint="https://ex/info",
        )
        params = parse_qs(urlparse(_make_client(provider).generate_authorization_url()).query)
        assert params["tenant"] == ["acme"]
        assert "state" in params

    def test_state_is_recorded_in_ledger(self, oauth_client):
        request = oauth_client.create_authorization_request({"user": "u1"})
        assert _state_from(request.url) == request.state
        assert len(oauth_client.state_ledger) == 1

    def test_random_caller_token_when_empty(self, oauth_client):
        first = oauth_client.create_authorization_request()
        second = oauth_client.create_authorization_request()
        assert first.caller_token
        assert first.caller_token != second.caller_token
        assert first.state != second.state

    def test_explicit_caller_token_is_kept(self, oauth_client):
        request = oauth_client.create_authorization_request(caller_token="csrf-1")
        assert request.caller_token == "csrf-1"

    def test_refused_state_returns_no_url(self, provider):
        ledger = MagicMock()
        ledger.issue.return_value = False
        client = _make_client(provider, ledger=ledger)

        with pytest.raises(StorageError):
            client.generate_authorization_url({"user": "u1"})


class TestValidateState:
    def test_full_round_trip_then_replay(self, oauth_client):
        request = oauth_client.create_authorization_request({"user": "u1"})
        state = _state_from(request.url)

        caller_token, payload = oauth_client.validate_state(state)
        assert caller_token
        assert caller_token == request.caller_token
        assert payload == {"user": "u1"}

        with pytest.raises(StateNotFoundError):
            oauth_client.validate_state(state)

    def test_caller_token_round_trips(self, oauth_client):
        request = oauth_client.create_authorization_request({"n": 1}, caller_token="csrf-xyz")
        assert oauth_client.validate_state(request.state) == ("csrf-xyz", {"n": 1})

    def test_empty_state(self, oauth_client):
        with pytest.raises(StateNotFoundError):
            oauth_client.validate_state("")

    def test_unknown_state_is_never_decrypted(self, oauth_client):
        foreign = encrypt_state(TEST_KEY, "t", {"user": "u1"})
        with patch.object(oauth_client._codec, "decode") as decode:
            with pytest.raises(StateNotFoundError):
                oauth_client.validate_state(foreign)
        decode.assert_not_called()

    def test_state_from_other_key_is_consumed_then_rejected(self, oauth_client):
        foreign = encrypt_state("abcdefghijklmnopqrstuvwx", "t", {})
        oauth_client.state_ledger.issue(foreign)

        with pytest.raises(DecryptionError):
            oauth_client.validate_state(foreign)
        # A rejected state stays consumed
        with pytest.raises(StateNotFoundError):
            oauth_client.validate_state(foreign)

    def test_state_not_valid_for_another_client_ledger(self, provider, oauth_client):
        other = _make_client(provider)
        state = _state_from(oauth_client.generate_authorization_url())
        with pytest.raises(StateNotFoundError):
            other.validate_state(state)

    def test_set_state_ledger(self, oauth_client):
        new_ledger = InMemoryStateLedger()
        oauth_client.set_state_ledger(new_ledger)
        assert oauth_client.state_ledger is new_ledger

        state = _state_from(oauth_client.generate_authorization_url())
        assert len(new_ledger) == 1
        oauth_client.validate_state(state)

    def test_set_state_ledger_rejects_none(self, oauth_client):
        with pytest.raises(ConfigurationError):
            oauth_client.set_state_ledger(None)


class TestExchangeAndUserInfo:
    def test_exchange_delegates_with_credentials(self, oauth_client, exchanger):
        token = oauth_client.exchange_code("auth-code")

        assert token.access_token == "access-123"
        credentials, endpoint, code, timeout = exchanger.exchange_calls[0]
        assert credentials.client_id == "client-id"
        assert credentials.redirect_url == "https://app.example.com/callback"
        assert endpoint == "https://ex/token"
        assert code == "auth-code"
        assert timeout is None

    def test_default_timeout_is_passed_through(self, provider):
        exchanger = FakeExchanger()
        client = _make_client(provider, exchanger=exchanger, timeout=7.5)
        client.exchange_code("c")
        client.exchange_code("c", timeout=1.0)
        assert [call[3] for call in exchanger.exchange_calls] == [7.5, 1.0]

    def test_exchange_errors_propagate(self, provider):
        client = _make_client(provider, exchanger=FakeExchanger(error=ExchangeError("invalid_grant", "test")))
        with pytest.raises(ExchangeError):
            client.exchange_code("bad")

    def test_unexpected_exchanger_errors_are_wrapped(self, provider):
        client = _make_client(provider, exchanger=FakeExchanger(error=RuntimeError("boom")))
        with pytest.raises(ExchangeError) as exc_info:
            client.exchange_code("c")
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.provider == "test"

    def test_fetch_user_info_uses_token(self, oauth_client):
        token = OAuthToken(access_token="access-123")
        assert oauth_client.fetch_user_info(token) == {"sub": "42", "email": "u1@example.com"}
