"""Session management for the Number-BATTLE web service."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from fastapi import HTTPException

from _01_simulator import rules
from _01_simulator.simulate import GameSession
from _02_agents.strength import Strength  # noqa: TC001
from _04_ui.core.config import MAX_SESSIONS


@dataclass
class PlayerSession:
    """One browser session: the current game and its settings."""

    game: GameSession | None = None
    human_side: str = rules.PLAYER
    cpu_strength: Strength | None = None  # requested strength, if any

    @property
    def cpu_side(self) -> str:
        return rules.opponent(self.human_side)

    def require_game(self) -> GameSession:
        if self.game is None:
            raise HTTPException(status_code=404, detail="No active game")
        return self.game


class SessionStore:
    """Thread-safe session store with per-session isolation."""

    def __init__(self, max_sessions: int = MAX_SESSIONS):
        self._sessions: dict[str, PlayerSession] = {}
        self._lock = Lock()
        self._max_sessions = max_sessions

    def get_or_create(self, session_id: str) -> PlayerSession:
        """Get existing session or create new one."""
        with self._lock:
            if session_id not in self._sessions:
                # Enforce max sessions limit
                if len(self._sessions) >= self._max_sessions:
                    # Remove oldest session (simple LRU approximation)
                    oldest_key = next(iter(self._sessions))
                    del self._sessions[oldest_key]
                self._sessions[session_id] = PlayerSession()
            return self._sessions[session_id]

    def get(self, session_id: str) -> PlayerSession | None:
        """Get session if it exists."""
        with self._lock:
            return self._sessions.get(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
