"""Custom exception hierarchy for oauthflow.

Every error raised by the library inherits from OAuthFlowException so callers
can catch one type at the HTTP boundary and render ``to_dict()``.

Error codes follow pattern: [CATEGORY][NUMBER]
- CFG: Configuration errors (100-199)
- STA: State codec / ledger errors (200-299)
- PRV: Provider / network errors (300-399)
- CBK: Callback errors (400-499)
- FLW: Flow sequencing errors (500-599)
"""

from __future__ import annotations

from typing import Any

# Shown to end users for every state validation failure. Server logs keep
# the specific error class; the user must not learn which check failed.
STATE_INVALID_PUBLIC_MESSAGE = "Authorization request expired or invalid, please retry."


class OAuthFlowException(Exception):
    """Base exception for all oauthflow errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
        public_message: str | None = None,
    ):
        """Initialize exception with message and metadata.

        Args:
            message: Diagnostic message for server-side logs
            code: Unique error code (e.g., "STA204")
            status_code: HTTP status code suggested for API responses
            details: Optional additional context
            public_message: Message safe to show end users (defaults to message)
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.public_message = public_message or message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "message": self.public_message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# CONFIGURATION ERRORS (CFG100-199)
# ============================================================================

class ConfigurationError(OAuthFlowException):
    """Constructor argument or setting is missing or invalid."""

    def __init__(self, parameter: str, reason: str | None = None):
        message = f"Configuration error: {parameter} is not configured properly"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message=message,
            code="CFG100",
            status_code=500,
            details={"parameter": parameter, "reason": reason},
        )
        self.parameter = parameter


# ============================================================================
# STATE ERRORS (STA200-299)
# ============================================================================

class StateError(OAuthFlowException):
    """Base class for state codec and ledger errors."""
    pass


class SerializationError(StateError):
    """Payload could not be serialized into the state envelope."""

    def __init__(self, reason: str | None = None):
        super().__init__(
            message="Failed to serialize state data",
            code="STA200",
            status_code=500,
            details={"reason": reason} if reason else {},
        )


class DeserializationError(StateError):
    """Decrypted state does not match the expected payload shape."""

    def __init__(self, reason: str | None = None):
        super().__init__(
            message="Failed to deserialize state data",
            code="STA201",
            details={"reason": reason} if reason else {},
            public_message=STATE_INVALID_PUBLIC_MESSAGE,
        )


class EncryptionError(StateError):
    """State could not be encrypted (bad key or cipher failure)."""

    def __init__(self, reason: str | None = None):
        super().__init__(
            message="Failed to encrypt state data",
            code="STA202",
            status_code=500,
            details={"reason": reason} if reason else {},
        )


class DecryptionError(StateError):
    """State could not be decrypted or authenticated.

    Carries no reason on purpose: tampered, foreign and malformed states all
    look the same to the caller.
    """

    def __init__(self):
        super().__init__(
            message="Failed to decrypt state data",
            code="STA203",
            public_message=STATE_INVALID_PUBLIC_MESSAGE,
        )


class StateNotFoundError(StateError):
    """State was never issued, already consumed, expired or malformed."""

    def __init__(self):
        super().__init__(
            message="Invalid state: not found in stored states",
            code="STA204",
            public_message=STATE_INVALID_PUBLIC_MESSAGE,
        )


class StorageError(StateError):
    """State ledger refused to record an issued state."""

    def __init__(self, ledger: str | None = None):
        super().__init__(
            message="Failed to store state for validation",
            code="STA205",
            status_code=503,
            details={"ledger": ledger} if ledger else {},
            public_message="Unable to start authorization right now. Please try again.",
        )


# ============================================================================
# PROVIDER ERRORS (PRV300-399)
# ============================================================================

class ProviderError(OAuthFlowException):
    """Base class for OAuth provider and network errors."""
    pass


class ExchangeError(ProviderError):
    """Authorization code could not be exchanged for a token."""

    def __init__(self, reason: str | None = None, provider: str | None = None, code: str = "PRV300"):
        message = "OAuth2 token exchange failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code=code,
            status_code=502,
            details={"provider": provider} if provider else {},
        )
        self.provider = provider


class ExchangeTimeoutError(ExchangeError):
    """Token exchange did not complete before the deadline."""

    def __init__(self, provider: str | None = None):
        super().__init__(reason="timed out", provider=provider, code="PRV301")


class NetworkError(ProviderError):
    """Transport-level failure talking to the provider."""

    def __init__(self, reason: str | None = None, url: str | None = None, code: str = "PRV302"):
        message = "Failed to connect to OAuth provider"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code=code,
            status_code=502,
            details={"url": url} if url else {},
        )


class NetworkTimeoutError(NetworkError):
    """Provider request did not complete before the deadline."""

    def __init__(self, url: str | None = None):
        super().__init__(reason="timed out", url=url, code="PRV303")


class HTTPStatusError(ProviderError):
    """Provider answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str | None = None):
        super().__init__(
            message=f"User info request failed with status {status_code}",
            code="PRV304",
            status_code=502,
            details={"upstream_status": status_code, "url": url},
        )
        self.upstream_status = status_code


class DecodeError(ProviderError):
    """Provider response body is empty or not a JSON object."""

    def __init__(self, reason: str | None = None):
        message = "Failed to decode user info JSON"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message=message, code="PRV305", status_code=502)


# ============================================================================
# CALLBACK ERRORS (CBK400-499)
# ============================================================================

class CallbackError(OAuthFlowException):
    """Callback request is missing required parameters."""

    def __init__(self, missing: list[str]):
        super().__init__(
            message=f"OAuth callback missing parameters: {', '.join(missing)}",
            code="CBK400",
            details={"missing": missing},
            public_message=STATE_INVALID_PUBLIC_MESSAGE,
        )


class AuthorizationDeniedError(OAuthFlowException):
    """Provider redirected back with an ``error`` parameter."""

    def __init__(self, error: str, description: str | None = None):
        message = f"Authorization denied by provider: {error}"
        if description:
            message = f"{message} ({description})"
        super().__init__(
            message=message,
            code="CBK401",
            status_code=403,
            details={"error": error, "error_description": description},
            public_message="Authorization was not granted.",
        )
        self.error = error
        self.description = description


# ============================================================================
# FLOW ERRORS (FLW500-599)
# ============================================================================

class FlowStateError(OAuthFlowException):
    """A flow step was called out of order."""

    def __init__(self, current: str, attempted: str):
        super().__init__(
            message=f"Cannot {attempted} while flow is {current}",
            code="FLW500",
            status_code=409,
            details={"current": current, "attempted": attempted},
        )
