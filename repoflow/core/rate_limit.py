"""Rate limiting for outbound LLM calls.

Pipeline code only sees the :class:`RateLimiter` capability; the in-memory
implementation here is the default and can be swapped for a shared store.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

SIGNED_IN_PREFIX = "user:"
ANONYMOUS_KEY = "anonymous"


class RateLimiter(Protocol):
    def allow(self, key: str) -> bool:
        """Consume one unit for *key*; return False when the caller is over its limit."""
        ...


@dataclass(frozen=True)
class RateLimitTier:
    requests: int
    window_seconds: float


SIGNED_IN_TIER = RateLimitTier(requests=50, window_seconds=3600)
ANONYMOUS_TIER = RateLimitTier(requests=10, window_seconds=3600)


def rate_limit_key(user_id: object | None) -> str:
    """Key for a caller: ``user:<id>`` when signed in, a shared bucket otherwise."""
    return f"{SIGNED_IN_PREFIX}{user_id}" if user_id is not None else ANONYMOUS_KEY


class InMemoryRateLimiter:
    """Fixed-window counter per key, with a higher tier for signed-in keys."""

    def __init__(
        self,
        signed_in: RateLimitTier = SIGNED_IN_TIER,
        anonymous: RateLimitTier = ANONYMOUS_TIER,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._signed_in = signed_in
        self._anonymous = anonymous
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (count, window reset time)
        self._windows: dict[str, tuple[int, float]] = {}
        self._sweep_every = min(signed_in.window_seconds, anonymous.window_seconds)
        self._next_sweep = clock() + self._sweep_every

    def _tier(self, key: str) -> RateLimitTier:
        return self._signed_in if key.startswith(SIGNED_IN_PREFIX) else self._anonymous

    def allow(self, key: str) -> bool:
        tier = self._tier(key)
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._evict_expired(now)
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                self._windows[key] = (1, now + tier.window_seconds)
                return True
            if count >= tier.requests:
                return False
            self._windows[key] = (count + 1, reset_at)
            return True

    def _evict_expired(self, now: float) -> None:
        # caller holds the lock
        for key in [k for k, (_, reset_at) in self._windows.items() if now >= reset_at]:
            del self._windows[key]
        self._next_sweep = now + self._sweep_every

    def __len__(self) -> int:
        """Number of keys with a live window."""
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
