"""
Rate limiting.

Two layers, both fixed-window and both in process memory:

  • ``limiter`` (slowapi) guards routes per client IP:
      strict      – 5/min       (OTP request – prevents email spam)
      auth        – 10/min      (OTP verify – prevents brute-force)
      admin_login – 5/15 min    (password guessing)
      submit      – 10/hour     (survey submissions, incl. partial saves)
      admin       – 100/min     (admin API)
  • ``RateLimiter`` is a keyed counter for checks that are not per route,
    e.g. how many codes a single email address may request per minute.

State does not survive a restart and is not shared between server
processes.  For several instances, back ``RateLimiter`` with a shared
``limits`` storage (Redis, Memcached) instead of ``MemoryStorage``.
"""

from __future__ import annotations

import math

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
    strategy="fixed-window",
)

# Named rate strings for use in @limiter.limit() decorators
STRICT = "5/minute"              # OTP request (email sending)
AUTH = "10/minute"               # OTP verification
ADMIN_LOGIN = "5 per 15 minutes"  # admin password login
SUBMIT = "10/hour"               # survey submission
ADMIN = "100/minute"             # admin API


class RateLimiter:
    """Fixed-window request counter keyed by an arbitrary client identifier.

    The first request for a key (or the first after its window ended)
    opens a new window with a count of one.  Later requests in the same
    window are allowed while the count is below ``limit``; once it is
    reached they are refused and no longer counted.
    """

    def __init__(self, storage: Storage | None = None) -> None:
        self._storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    @staticmethod
    def _item(limit: int, window_ms: int) -> RateLimitItem:
        # limits works in whole seconds
        if window_ms < 1000:
            raise ValueError(f"window must be at least 1000 ms, got {window_ms}")
        return RateLimitItemPerSecond(limit, math.ceil(window_ms / 1000))

    def check(self, key: str, limit: int, window_ms: int) -> bool:
        """Count one request for *key*; False once the window is full.

        Windows are whole seconds: *window_ms* is rounded up and must be
        at least 1000, otherwise ValueError.
        """
        item = self._item(limit, window_ms)
        if not self._strategy.test(item, key):
            return False
        return self._strategy.hit(item, key)

    def remaining(self, key: str, limit: int, window_ms: int) -> int:
        stats = self._strategy.get_window_stats(self._item(limit, window_ms), key)
        return max(0, stats.remaining)

    def reset_time(self, key: str, limit: int, window_ms: int) -> float:
        """Epoch seconds at which the current window for *key* ends."""
        stats = self._strategy.get_window_stats(self._item(limit, window_ms), key)
        return stats.reset_time

    def headers(self, key: str, limit: int, window_ms: int, now: float) -> dict[str, str]:
        """Back-off headers for a refused request."""
        reset = self.reset_time(key, limit, window_ms)
        return {
            "Retry-After": str(max(0, math.ceil(reset - now))),
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(self.remaining(key, limit, window_ms)),
            "X-RateLimit-Reset": str(int(reset)),
        }

    def clear(self, key: str, limit: int, window_ms: int) -> None:
        self._strategy.clear(self._item(limit, window_ms), key)

    def reset(self) -> None:
        """Forget every key (tests)."""
        self._storage.reset()


# Per-email throttle for code requests
otp_email_limiter = RateLimiter()
