"""
OAuth State Encryption.

Binds a caller-supplied CSRF token and an arbitrary payload into an opaque,
tamper-evident string that travels through the provider redirect.

Format:
    "v1." + base64url_nopad(nonce || ciphertext || tag)

Security:
- AES-GCM (AES-128/192/256 depending on key length) for confidentiality
  and integrity
- Fresh 96-bit random nonce per call, so identical inputs never produce
  identical output
- Version tag is bound as associated data; changing it breaks the tag
- Every decryption failure surfaces as the same DecryptionError
"""
from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Any, Generic, TypeVar

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from oauthflow.core.exceptions import (
    DecryptionError,
    DeserializationError,
    EncryptionError,
    SerializationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

VALID_KEY_SIZES = (16, 24, 32)
NONCE_SIZE = 12
TAG_SIZE = 16

STATE_VERSION_V1 = "v1"
_VERSION_SEPARATOR = "."


class StateEnvelope(BaseModel, Generic[T]):
    """Plaintext carried inside the encrypted state."""

    original_state: str
    data: T


def _coerce_key(key: bytes | str) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


def is_valid_key(key: bytes | str) -> bool:
    """Return True if key length matches an AES key size."""
    return len(_coerce_key(key)) in VALID_KEY_SIZES


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.b64decode((text + padding).encode("ascii"), altchars=b"-_", validate=True)


class StateCodec(Generic[T]):
    """
    Encrypts and decrypts OAuth state for one key and payload type.

    The payload type drives both serialization and validation through a
    pydantic TypeAdapter, so decode returns the same type that was encoded.
    """

    def __init__(self, key: bytes | str, payload_type: Any = Any):
        """
        Initialize codec.

        Args:
            key: AES key, 16, 24 or 32 bytes (str keys are UTF-8 encoded)
            payload_type: Type of the payload attached to each state

        Raises:
            EncryptionError: If key length is not a valid AES key size
        """
        self._key = _coerce_key(key)
        if len(self._key) not in VALID_KEY_SIZES:
            raise EncryptionError(
                f"key must be one of {VALID_KEY_SIZES} bytes, got {len(self._key)}"
            )
        self._aead = AESGCM(self._key)
        self._envelope = TypeAdapter(StateEnvelope[payload_type])

    def encode(self, caller_token: str, payload: T) -> str:
        """
        Serialize and encrypt a caller token with its payload.

        Args:
            caller_token: CSRF token chosen by the caller
            payload: Application data to carry through the redirect

        Returns:
            Opaque state string safe for use in a URL query

        Raises:
            SerializationError: If payload cannot be serialized
            EncryptionError: If the cipher fails
        """
        try:
            envelope = self._envelope.validate_python(
                {"original_state": caller_token, "data": payload}
            )
            plaintext = self._envelope.dump_json(envelope)
        except (PydanticSerializationError, ValidationError, TypeError, ValueError) as e:
            raise SerializationError(str(e)) from e

        nonce = os.urandom(NONCE_SIZE)
        aad = STATE_VERSION_V1.encode("ascii")
        try:
            ciphertext = self._aead.encrypt(nonce, plaintext, aad)
        except (OverflowError, ValueError) as e:
            raise EncryptionError(str(e)) from e

        return f"{STATE_VERSION_V1}{_VERSION_SEPARATOR}{_b64encode(nonce + ciphertext)}"

    def decode(self, opaque_state: str) -> tuple[str, T]:
        """
        Decrypt and deserialize an opaque state.

        Args:
            opaque_state: Value previously returned by encode

        Returns:
            Tuple of (caller_token, payload)

        Raises:
            DecryptionError: If the state is malformed, tampered with or
                encrypted under a different key
            DeserializationError: If the decrypted payload has the wrong shape
        """
        version, sep, body = (opaque_state or "").partition(_VERSION_SEPARATOR)
        if not sep or version != STATE_VERSION_V1:
            raise DecryptionError()

        plaintext = self._decrypt_v1(body)

        try:
            envelope = self._envelope.validate_json(plaintext)
        except ValidationError as e:
            raise DeserializationError(f"{e.error_count()} validation error(s)") from e

        return envelope.original_state, envelope.data

    def _decrypt_v1(self, body: str) -> bytes:
        try:
            raw = _b64decode(body)
        except (binascii.Error, ValueError, UnicodeEncodeError):
            raise DecryptionError() from None

        # Non-canonical encodings (stray trailing bits) decode to the same bytes
        if len(raw) < NONCE_SIZE + TAG_SIZE or _b64encode(raw) != body:
            raise DecryptionError()

        nonce, ciphertext = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            return self._aead.decrypt(nonce, ciphertext, STATE_VERSION_V1.encode("ascii"))
        except InvalidTag:
            raise DecryptionError() from None


def encrypt_state(key: bytes | str, caller_token: str, payload: Any, payload_type: Any = Any) -> str:
    """Encrypt a caller token and payload into an opaque state string."""
    return StateCodec(key, payload_type).encode(caller_token, payload)


def decrypt_state(key: bytes | str, opaque_state: str, payload_type: Any = Any) -> tuple[str, Any]:
    """
    Decrypt an opaque state string.

    A key of invalid length can never have produced a valid state, so it
    is reported as DecryptionError rather than EncryptionError.
    """
    if not is_valid_key(key):
        raise DecryptionError()
    return StateCodec(key, payload_type).decode(opaque_state)
