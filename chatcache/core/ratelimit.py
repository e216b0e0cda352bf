from __future__ import annotations

import time
from threading import Lock

from chatcache.core.store import Clock


class RateLimiter:
    """
    Sliding-window request log keyed by client address.

    Clients with no request inside the window are dropped once per window,
    so the log only holds addresses seen recently.
    """

    def __init__(self, max_requests: int, window_seconds: float, clock: Clock = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._request_log: dict[str, list[float]] = {}
        self._last_prune = clock()
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._request_log)

    def _prune_locked(self, now: float) -> None:
        stale = [
            key for key, stamps in self._request_log.items()
            if not stamps or now - stamps[-1] >= self.window_seconds
        ]
        for key in stale:
            del self._request_log[key]
        self._last_prune = now

    def allow(self, client_key: str) -> bool:
        now = self.clock()
        with self._lock:
            if now - self._last_prune >= self.window_seconds:
                self._prune_locked(now)
            recent = [t for t in self._request_log.get(client_key, []) if now - t < self.window_seconds]
            if len(recent) >= self.max_requests:
                self._request_log[client_key] = recent
                return False
            recent.append(now)
            self._request_log[client_key] = recent
            return True
