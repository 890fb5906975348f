"""Per-user request throttling (fixed window, in process).

Each Telegram user gets `max_requests` queries per `window_s` seconds. The window starts with the
user's first request and resets once it has elapsed.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass
from time import monotonic


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in_s: float


@dataclass
class _Window:
    started: float
    count: int


class RateLimiter:
    """Fixed-window request counter keyed by user id."""

    def __init__(
            self,
            *,
            max_requests: int = 10,
            window_s: float = 60.0,
            max_keys: int = 1_000,
            clock: Callable[[], float] = monotonic,
    ) -> None:
        if max_requests <= 0 or window_s <= 0:
            raise ValueError("max_requests and window_s must be positive")
        self._max_requests = max_requests
        self._window_s = window_s
        self._max_keys = max_keys
        self._clock = clock
        self._windows: dict[Hashable, _Window] = {}

    def _prune(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now - w.started >= self._window_s]
        for key in expired:
            del self._windows[key]

    def check(self, key: Hashable) -> RateLimitResult:
        """Count one request for `key` and report whether it is allowed."""

        now = self._clock()
        window = self._windows.get(key)
        if window is None or now - window.started >= self._window_s:
            if len(self._windows) >= self._max_keys:
                self._prune(now)
            window = _Window(started=now, count=0)
            self._windows[key] = window

        reset_in_s = max(0.0, self._window_s - (now - window.started))
        if window.count >= self._max_requests:
            return RateLimitResult(allowed=False, remaining=0, reset_in_s=reset_in_s)

        window.count += 1
        return RateLimitResult(
            allowed=True,
            remaining=self._max_requests - window.count,
            reset_in_s=reset_in_s,
        )
