"""Game logic and session management for the Number-BATTLE web service."""

from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException, Request, Response

from _01_simulator import rules
from _01_simulator.actions import Attack, Move, Split
from _01_simulator.exceptions import GameAlreadyOverError, NumberBattleError
from _01_simulator.simulate import GameSession
from _02_agents.cpu import resolve_strength
from _02_agents.strength import Strength
from _04_ui.core.config import (
    DEFAULT_CPU_STRENGTH,
    FORCE_CPU_STRENGTH,
    SESSION_COOKIE,
    SESSION_HEADER,
)
from _04_ui.core.session import PlayerSession
from _04_ui.models.requests import MovePayload

logger = logging.getLogger(__name__)


def get_session_id(request: Request) -> str:
    """Extract or generate session ID from request."""
    # Try to get from cookie first
    session_id = request.cookies.get(SESSION_COOKIE)
    if session_id:
        return session_id
    # Fall back to header
    session_id = request.headers.get(SESSION_HEADER)
    if session_id:
        return session_id
    # Generate new one (will be set in response)
    return uuid.uuid4().hex


def set_session_cookie(response: Response, session_id: str) -> None:
    """Set session cookie on response."""
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session_id,
        httponly=True,
        samesite="lax",
        max_age=86400 * 7,  # 7 days
    )


def domain_error(exc: NumberBattleError) -> HTTPException:
    """Map a domain error to an HTTP error."""
    if isinstance(exc, GameAlreadyOverError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def move_from_payload(payload: MovePayload, side: str) -> Move:
    """Build ``side``'s move from a request payload.

    Raises:
        HTTPException: 400 if a field the move type needs is missing.
    """
    if payload.type == "attack":
        if payload.from_index is None or payload.to_index is None:
            raise HTTPException(status_code=400, detail="Attack needs fromIndex and toIndex")
        return Attack(side, payload.from_index, rules.opponent(side), payload.to_index)
    if payload.values is None:
        raise HTTPException(status_code=400, detail="Split needs two values")
    return Split(side, payload.values[0], payload.values[1])


def start_game(session: PlayerSession, starting_side: str, cpu_strength: str | None) -> GameSession:
    session.game = GameSession(starting_side=starting_side)
    session.cpu_strength = Strength.parse(cpu_strength) if cpu_strength else None
    logger.info("New game: %s starts, cpu strength %s", starting_side, cpu_strength or "default")
    return session.game


def apply_human_move(session: PlayerSession, move: Move) -> None:
    """Commit the human move, check for a win and pass the turn to the CPU.

    Raises:
        HTTPException: 409 if the game is over, 400 if the move is illegal.
    """
    game = session.require_game()
    try:
        game.apply_move(session.human_side, move)
    except NumberBattleError as exc:
        raise domain_error(exc) from exc
    if not game.check_win().game_over:
        game.switch_turn_to(session.cpu_side)


def strength_for(session: PlayerSession, requested: str | None = None) -> Strength:
    """Forced strength, then this request's, then the session's, then the default."""
    return resolve_strength(
        FORCE_CPU_STRENGTH,
        requested or (session.cpu_strength.value if session.cpu_strength else None),
        DEFAULT_CPU_STRENGTH,
    )
