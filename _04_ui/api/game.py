"""Game-related API routes."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from _04_ui.core.session import SessionStore  # noqa: TC001
from _04_ui.models.requests import MovePayload, NewGameRequest  # noqa: TC001
from _04_ui.services.game import (
    apply_human_move,
    get_session_id,
    move_from_payload,
    set_session_cookie,
    start_game,
)
from _04_ui.services.serializer import serialize, serialize_move

router = APIRouter(prefix="/api", tags=["game"])

# Store reference - will be set by app factory
_store: SessionStore | None = None


def set_store(store: SessionStore) -> None:
    """Set the session store for this router."""
    global _store
    _store = store


def get_store() -> SessionStore:
    """Get the session store."""
    if _store is None:
        raise RuntimeError("Store not initialized")
    return _store


@router.post("/new-game")
def api_new_game(payload: NewGameRequest, request: Request, response: Response) -> dict:
    """Start a new game."""
    session_id = get_session_id(request)
    set_session_cookie(response, session_id)
    session = get_store().get_or_create(session_id)
    start_game(session, payload.starting_side, payload.cpu_strength)
    return serialize(session)


@router.get("/state")
def api_state(request: Request) -> dict:
    """Get current game state."""
    session = get_store().get_or_create(get_session_id(request))
    return serialize(session)


@router.get("/legal-moves")
def api_legal_moves(request: Request) -> list[dict]:
    """Get legal moves for the side to move."""
    session = get_store().get_or_create(get_session_id(request))
    game = session.require_game()
    return [serialize_move(move) for move in game.legal_moves()]


@router.post("/move")
def api_move(payload: MovePayload, request: Request) -> dict:
    """Apply a human move."""
    session = get_store().get_or_create(get_session_id(request))
    move = move_from_payload(payload, session.human_side)
    apply_human_move(session, move)
    return serialize(session)
