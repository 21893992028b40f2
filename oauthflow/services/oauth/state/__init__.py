"""OAuth state protection: encrypted state codec and single-use ledgers."""
from .codec import (
    VALID_KEY_SIZES,
    StateCodec,
    StateEnvelope,
    decrypt_state,
    encrypt_state,
    is_valid_key,
)
from .ledger import InMemoryStateLedger, RedisStateLedger, StateLedger, state_fingerprint

__all__ = [
    # Codec
    "VALID_KEY_SIZES",
    "StateCodec",
    "StateEnvelope",
    "decrypt_state",
    "encrypt_state",
    "is_valid_key",
    # Ledgers
    "StateLedger",
    "InMemoryStateLedger",
    "RedisStateLedger",
    "state_fingerprint",
]
