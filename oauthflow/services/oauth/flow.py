"""Per-flow stage tracking on top of OAuthClient."""
from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Generic, TypeVar

from oauthflow.core.exceptions import FlowStateError

from .callback import CallbackParams
from .client import AuthorizationRequest, OAuthClient
from .token import OAuthToken

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class FlowStage(str, enum.Enum):
    INITIATED = "initiated"
    AWAITING_CALLBACK = "awaiting_callback"
    VALIDATED = "validated"
    EXCHANGED = "exchanged"
    COMPLETED = "completed"
    FAILED = "failed"


class OAuthFlow(Generic[T]):
    """
    One authorization code flow.

    Steps must run in order. Any error raised by a step moves the flow to
    FAILED; a failed flow cannot continue and the caller restarts with a
    new flow (the consumed state cannot be validated again).
    """

    def __init__(self, client: OAuthClient[T], stage: FlowStage = FlowStage.INITIATED):
        self._client = client
        self.stage = stage
        self.caller_token: str | None = None
        self.payload: T | None = None
        self.token: OAuthToken | None = None
        self.user_info: dict[str, Any] | None = None

    @classmethod
    def resume(cls, client: OAuthClient[T]) -> OAuthFlow[T]:
        """Pick up a flow whose URL was issued elsewhere (e.g. another request)."""
        return cls(client, stage=FlowStage.AWAITING_CALLBACK)

    def _advance(self, expected: FlowStage, attempted: str, target: FlowStage, step: Callable[[], R]) -> R:
        if self.stage != expected:
            raise FlowStateError(self.stage.value, attempted)
        try:
            result = step()
        except Exception:
            logger.info(f"OAuth flow failed during {attempted} | stage={self.stage.value}")
            self.stage = FlowStage.FAILED
            raise
        self.stage = target
        return result

    def start(self, payload: T | None = None, caller_token: str = "") -> AuthorizationRequest:
        request = self._advance(
            FlowStage.INITIATED,
            "start",
            FlowStage.AWAITING_CALLBACK,
            lambda: self._client.create_authorization_request(payload, caller_token),
        )
        self.caller_token = request.caller_token
        return request

    def validate(self, opaque_state: str) -> tuple[str, T]:
        caller_token, payload = self._advance(
            FlowStage.AWAITING_CALLBACK,
            "validate state",
            FlowStage.VALIDATED,
            lambda: self._client.validate_state(opaque_state),
        )
        self.caller_token, self.payload = caller_token, payload
        return caller_token, payload

    def exchange(self, code: str, timeout: float | None = None) -> OAuthToken:
        self.token = self._advance(
            FlowStage.VALIDATED,
            "exchange code",
            FlowStage.EXCHANGED,
            lambda: self._client.exchange_code(code, timeout=timeout),
        )
        return self.token

    def fetch_user_info(self, timeout: float | None = None) -> dict[str, Any]:
        self.user_info = self._advance(
            FlowStage.EXCHANGED,
            "fetch user info",
            FlowStage.COMPLETED,
            lambda: self._client.fetch_user_info(self.token, timeout=timeout),
        )
        return self.user_info

    def complete(self, callback: CallbackParams, timeout: float | None = None) -> dict[str, Any]:
        """Validate, exchange and fetch user info for a parsed callback."""
        self.validate(callback.state)
        self.exchange(callback.code, timeout=timeout)
        return self.fetch_user_info(timeout=timeout)
