"""
Fixed-window rate limiter for login attempts.

One counter per key (client address). The first attempt opens a window of
`window_seconds`; attempts beyond `max_attempts` inside the window are
denied until it closes. State lives in the limiter instance, which the
application owns (app.state.login_limiter) and sweeps on a timer.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Per-key attempt counter reset on a fixed time window."""

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitDecision:
        """Count one attempt for `key` and say whether it may proceed."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return RateLimitDecision(allowed=True)

            if window.count >= self.max_attempts:
                return RateLimitDecision(
                    allowed=False,
                    retry_after=max(1, math.ceil(window.reset_at - now)),
                )

            window.count += 1
            return RateLimitDecision(allowed=True)

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, window in self._windows.items() if now > window.reset_at]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)
