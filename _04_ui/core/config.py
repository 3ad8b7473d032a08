"""Configuration constants for the Number-BATTLE web service.

Values can be overridden through environment variables.
"""

from __future__ import annotations

import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# CPU strength
DEFAULT_CPU_STRENGTH = os.environ.get("NUMBER_BATTLE_CPU_STRENGTH", "hard")
FORCE_CPU_STRENGTH = os.environ.get("NUMBER_BATTLE_FORCE_STRENGTH") or None  # overrides every request

# Tablebase artifact: a path or an http(s) URL; unset means build in-process
TABLEBASE_SOURCE = os.environ.get("NUMBER_BATTLE_TABLEBASE") or None

# Background search worker: "" (off), "thread" or "process"
OFFLOAD_BACKEND = os.environ.get("NUMBER_BATTLE_OFFLOAD", "").strip().lower()
OFFLOAD_TIMEOUT = _env_float("NUMBER_BATTLE_OFFLOAD_TIMEOUT", 8.0)

# Hint search
HINT_SEARCH_DEPTH = 15
MAX_HINT_SEARCH_DEPTH = 15  # searches run on the event loop when the worker times out

# Rate limiting for search requests
RATE_LIMIT_REQUESTS = 60  # requests per window
RATE_LIMIT_WINDOW = 60  # window in seconds

# Sessions
SESSION_COOKIE = "session_id"
SESSION_HEADER = "X-Session-ID"
MAX_SESSIONS = 1000
