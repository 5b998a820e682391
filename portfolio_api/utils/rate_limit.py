"""In-memory rate limiter for lightweight endpoint protection.

Counters live in the process only; several server instances behind a
load balancer each keep their own windows.
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class InMemoryRateLimiter:
    """Fixed-window counter per key.

    The window for a key opens on its first hit and resets once
    `window_seconds` have elapsed since then. Once more than
    `sweep_threshold` keys are tracked, expired windows are dropped on
    the next hit.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_threshold: int = 1024):
        self._windows: dict[str, tuple[float, int, int]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_threshold = sweep_threshold

    def allow(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
        now = self._clock()
        with self._lock:
            if len(self._windows) > self._sweep_threshold:
                self._sweep(now)
            started, count, _ = self._windows.get(key, (now, 0, window_seconds))
            if now - started >= window_seconds:
                started, count = now, 0
            if count >= max_requests:
                retry_after = max(1, int(window_seconds - (now - started)))
                return False, retry_after
            self._windows[key] = (started, count + 1, window_seconds)
        return True, 0

    def _sweep(self, now: float) -> None:
        expired = [key for key, (started, _, window) in self._windows.items() if now - started >= window]
        for key in expired:
            del self._windows[key]

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
