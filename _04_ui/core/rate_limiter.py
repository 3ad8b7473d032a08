"""Rate limiting for search requests."""

from __future__ import annotations

import time
from collections import defaultdict
from threading import Lock

from _04_ui.core.config import RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW


class RateLimiter:
    """Sliding-window limiter keyed by session id."""

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_REQUESTS,
        window_seconds: float = RATE_LIMIT_WINDOW,
    ):
        self._max_requests = max_requests
        self._window = window_seconds
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = Lock()

    def is_allowed(self, session_id: str) -> bool:
        """Record a request and report whether it is within the limit."""
        now = time.monotonic()
        with self._lock:
            recent = [t for t in self._requests[session_id] if now - t < self._window]
            if len(recent) >= self._max_requests:
                self._requests[session_id] = recent
                return False
            recent.append(now)
            self._requests[session_id] = recent
            return True
