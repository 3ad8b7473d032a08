"""CPU move API route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from _01_simulator.exceptions import NumberBattleError
from _04_ui.core.session import SessionStore  # noqa: TC001
from _04_ui.models.requests import AIMoveRequest
from _04_ui.services.ai import AiServices  # noqa: TC001
from _04_ui.services.game import domain_error, get_session_id, strength_for
from _04_ui.services.serializer import serialize, serialize_move

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["actions"])

# Store references - will be set by app factory
_store: SessionStore | None = None
_services: AiServices | None = None


def set_store(store: SessionStore, services: AiServices) -> None:
    """Set the session store and AI services for this router."""
    global _store, _services
    _store = store
    _services = services


def get_store() -> tuple[SessionStore, AiServices]:
    """Get the session store and AI services."""
    if _store is None or _services is None:
        raise RuntimeError("Store not initialized")
    return _store, _services


@router.post("/ai-move")
async def api_ai_move(request: Request, payload: AIMoveRequest | None = None) -> dict:
    """Have the CPU make its move."""
    store, services = get_store()
    session = store.get_or_create(get_session_id(request))
    game = session.require_game()

    if game.game_over:
        raise HTTPException(status_code=409, detail="Game is already over")
    if game.current_side != session.cpu_side:
        raise HTTPException(status_code=400, detail="It's the human player's turn")

    requested = payload.cpu_strength if payload is not None else None
    strength = strength_for(session, requested)
    cpu = services.cpu_for(strength, session.cpu_side)
    try:
        move = await cpu.play_turn(game)
    except NumberBattleError as exc:
        logger.exception("CPU failed to move")
        raise domain_error(exc) from exc

    result = serialize(session)
    result["aiMove"] = serialize_move(move) if move is not None else None
    result["appliedStrength"] = strength.value
    return result
