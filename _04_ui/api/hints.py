"""Hint and tablebase API routes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from _01_simulator.exceptions import OffloadError
from _04_ui.core.session import SessionStore  # noqa: TC001
from _04_ui.models.requests import HintSearchRequest, SideName
from _04_ui.services.ai import AiServices  # noqa: TC001
from _04_ui.services.game import get_session_id

router = APIRouter(prefix="/api", tags=["hints"])

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


@router.get("/hints")
async def api_hints(
    request: Request,
    side: SideName | None = None,
    perspective: SideName | None = None,
) -> dict:
    """Outcome of every legal move of ``side`` (default: the human side)."""
    store, services = get_store()
    session = store.get_or_create(get_session_id(request))
    game = session.require_game()
    acting = side or session.human_side
    viewpoint = perspective or acting

    moves = [] if game.game_over else await services.offload.analyze_moves(game.state, acting, viewpoint)
    return {
        "side": acting,
        "perspective": viewpoint,
        "tablebaseLoaded": services.tablebase.is_loaded,
        "moves": moves,
    }


@router.post("/hint-search")
async def api_hint_search(request: Request, payload: HintSearchRequest | None = None) -> dict:
    """Depth-limited search of the best move for the side to move."""
    store, services = get_store()
    session_id = get_session_id(request)
    if not services.search_limiter.is_allowed(session_id):
        raise HTTPException(status_code=429, detail="Too many search requests")

    payload = payload or HintSearchRequest()
    game = store.get_or_create(session_id).require_game()
    side = payload.side or game.current_side
    try:
        result = await services.offload.hint_search(game.state, side, payload.depth)
    except OffloadError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"side": side, "depth": payload.depth, "result": result}


@router.get("/tablebase")
def api_tablebase(key: str | None = None) -> dict:
    """Tablebase statistics, or a single entry when ``key`` is given."""
    _, services = get_store()
    stats = services.tablebase.get_stats()
    if key is None:
        return {"stats": stats}
    entry = services.tablebase.lookup(key)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No tablebase entry for {key!r}")
    return {"key": key, **entry.to_dict()}
