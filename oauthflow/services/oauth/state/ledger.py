"""Single-use ledgers of outstanding OAuth states.

A state is issued when an authorization URL is handed out and consumed when
the callback comes back. ``consume`` returns True at most once per issued
state, which is what stops CSRF and replay of a captured callback.
"""
from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Callable, Protocol

import redis

logger = logging.getLogger(__name__)


def state_fingerprint(state: str) -> str:
    """Return a compact SHA-256 hex digest of an opaque state."""
    return hashlib.sha256(state.encode("utf-8")).hexdigest()


class StateLedger(Protocol):
    """Interface required by OAuthClient for state bookkeeping."""

    def issue(self, state: str) -> bool:  # pragma: no cover - protocol stub
        """Record state as outstanding. False means the URL must not be handed out."""
        ...

    def consume(self, state: str) -> bool:  # pragma: no cover - protocol stub
        """Atomically check and remove state. True exactly once per issued state."""
        ...


class InMemoryStateLedger:
    """
    Thread-safe in-memory ledger.

    Suitable for tests and single-process deployments. States are lost on
    restart and are not shared between processes; use RedisStateLedger for
    anything behind a load balancer.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize ledger.

        Args:
            ttl_seconds: Lifetime of an issued state; None keeps states until consumed
            clock: Monotonic time source, injectable for tests
        """
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._states: dict[str, float | None] = {}
        self._lock = threading.Lock()

    def issue(self, state: str) -> bool:
        if not state:
            return False
        expires_at = self._clock() + self._ttl if self._ttl is not None else None
        with self._lock:
            self._purge_expired()
            self._states[state] = expires_at
        return True

    def consume(self, state: str) -> bool:
        if not state:
            return False
        with self._lock:
            if state not in self._states:
                return False
            expires_at = self._states.pop(state)
        if expires_at is not None and self._clock() >= expires_at:
            logger.debug(f"Expired OAuth state presented | fingerprint={state_fingerprint(state)[:12]}")
            return False
        return True

    def fingerprints(self) -> list[str]:
        """Short fingerprints of live states, for diagnostics without exposing tokens."""
        with self._lock:
            self._purge_expired()
            return sorted(state_fingerprint(state)[:12] for state in self._states)

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._states)

    def _purge_expired(self) -> None:
        # Caller holds self._lock
        if self._ttl is None:
            return
        now = self._clock()
        expired = [s for s, exp in self._states.items() if exp is not None and now >= exp]
        for state in expired:
            del self._states[state]


class RedisStateLedger:
    """
    Redis-backed ledger shared across processes.

    Keys are SHA-256 fingerprints of the state with a TTL, so raw tokens are
    never stored and abandoned flows clean themselves up. ``DEL`` reports
    how many keys it removed, which gives an atomic consume-once.
    """

    def __init__(
        self,
        client: redis.Redis,
        ttl_seconds: int = 600,
        prefix: str = "oauth:state:",
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._client = client
        self._ttl = ttl_seconds
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = 600, **options) -> RedisStateLedger:
        """Create a ledger with its own Redis connection."""
        options.setdefault("socket_connect_timeout", 5)
        options.setdefault("socket_timeout", 5)
        client = redis.Redis.from_url(url, decode_responses=True, **options)
        return cls(client, ttl_seconds=ttl_seconds)

    def _key(self, state: str) -> str:
        return f"{self._prefix}{state_fingerprint(state)}"

    def issue(self, state: str) -> bool:
        if not state:
            return False
        try:
            stored = self._client.set(self._key(state), "1", ex=self._ttl, nx=True)
        except redis.RedisError as e:
            logger.warning(f"Failed to store OAuth state in Redis: {e}")
            return False
        if not stored:
            # NX refused: the exact state is already outstanding
            logger.warning("OAuth state already outstanding; refusing to reissue")
            return False
        return True

    def consume(self, state: str) -> bool:
        if not state:
            return False
        try:
            removed = self._client.delete(self._key(state))
        except redis.RedisError as e:
            # Fail closed: an unverifiable state is treated as unknown
            logger.warning(f"Redis unavailable for OAuth state check: {e}")
            return False
        return removed == 1
