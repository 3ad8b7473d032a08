"""Core components for the Number-BATTLE web service."""

from _04_ui.core.config import (
    DEFAULT_CPU_STRENGTH,
    FORCE_CPU_STRENGTH,
    HINT_SEARCH_DEPTH,
    MAX_HINT_SEARCH_DEPTH,
    OFFLOAD_BACKEND,
    OFFLOAD_TIMEOUT,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    TABLEBASE_SOURCE,
)
from _04_ui.core.rate_limiter import RateLimiter
from _04_ui.core.session import PlayerSession, SessionStore

__all__ = [
    "DEFAULT_CPU_STRENGTH",
    "FORCE_CPU_STRENGTH",
    "HINT_SEARCH_DEPTH",
    "MAX_HINT_SEARCH_DEPTH",
    "OFFLOAD_BACKEND",
    "OFFLOAD_TIMEOUT",
    "RATE_LIMIT_REQUESTS",
    "RATE_LIMIT_WINDOW",
    "TABLEBASE_SOURCE",
    "PlayerSession",
    "RateLimiter",
    "SessionStore",
]
