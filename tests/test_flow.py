"""Tests for per-flow stage tracking."""
from urllib.parse import parse_qs, urlparse

import pytest

from oauthflow.core.exceptions import ExchangeError, FlowStateError, StateNotFoundError
from oauthflow.services.oauth import CallbackParams, FlowStage, OAuthFlow


def test_happy_path_walks_every_stage(oauth_client):
    flow = OAuthFlow(oauth_client)
    assert flow.stage is FlowStage.INITIATED

    request = flow.start({"user": "u1"}, caller_token="csrf")
    assert flow.stage is FlowStage.AWAITING_CALLBACK
    assert flow.caller_token == "csrf"

    assert flow.validate(request.state) == ("csrf", {"user": "u1"})
    assert flow.stage is FlowStage.VALIDATED
    assert flow.payload == {"user": "u1"}

    token = flow.exchange("auth-code")
    assert flow.stage is FlowStage.EXCHANGED
    assert flow.token is token

    assert flow.fetch_user_info() == {"sub": "42", "email": "u1@example.com"}
    assert flow.stage is FlowStage.COMPLETED


def test_complete_from_resumed_flow(oauth_client, exchanger):
    url = oauth_client.generate_authorization_url({"user": "u1"})
    state = parse_qs(urlparse(url).query)["state"][0]

    flow = OAuthFlow.resume(oauth_client)
    assert flow.stage is FlowStage.AWAITING_CALLBACK

    user_info = flow.complete(CallbackParams(code="auth-code", state=state), timeout=3)

    assert user_info["sub"] == "42"
    assert flow.stage is FlowStage.COMPLETED
    assert flow.payload == {"user": "u1"}
    assert exchanger.exchange_calls[0][2:] == ("auth-code", 3)


@pytest.mark.parametrize(
    "step, args",
    [
        ("validate", ("v1.abc",)),
        ("exchange", ("code",)),
        ("fetch_user_info", ()),
    ],
)
def test_out_of_order_steps_are_rejected(oauth_client, step, args):
    flow = OAuthFlow(oauth_client)
    with pytest.raises(FlowStateError) as exc_info:
        getattr(flow, step)(*args)
    assert exc_info.value.status_code == 409
    # Rejected calls leave the stage untouched
    assert flow.stage is FlowStage.INITIATED


def test_start_twice_is_rejected(oauth_client):
    flow = OAuthFlow(oauth_client)
    flow.start()
    with pytest.raises(FlowStateError):
        flow.start()


def test_invalid_state_fails_the_flow(oauth_client):
    flow = OAuthFlow.resume(oauth_client)
    with pytest.raises(StateNotFoundError):
        flow.validate("v1.unknown")
    assert flow.stage is FlowStage.FAILED

    with pytest.raises(FlowStateError):
        flow.validate("v1.unknown")


def test_exchange_error_fails_the_flow(oauth_client, exchanger):
    exchanger.error = ExchangeError("invalid_grant")
    flow = OAuthFlow(oauth_client)
    request = flow.start()
    flow.validate(request.state)

    with pytest.raises(ExchangeError):
        flow.exchange("bad-code")
    assert flow.stage is FlowStage.FAILED
    assert flow.token is None
