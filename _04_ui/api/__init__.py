"""API routers for the Number-BATTLE web service."""

from _04_ui.api.actions import router as actions_router
from _04_ui.api.game import router as game_router
from _04_ui.api.hints import router as hints_router

__all__ = [
    "actions_router",
    "game_router",
    "hints_router",
]
