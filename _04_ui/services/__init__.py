"""Service layer for the Number-BATTLE web service."""

from _04_ui.services.ai import AiServices
from _04_ui.services.game import (
    apply_human_move,
    domain_error,
    get_session_id,
    move_from_payload,
    set_session_cookie,
    start_game,
    strength_for,
)
from _04_ui.services.serializer import (
    serialize,
    serialize_move,
    serialize_record,
)

__all__ = [
    "AiServices",
    "apply_human_move",
    "domain_error",
    "get_session_id",
    "move_from_payload",
    "serialize",
    "serialize_move",
    "serialize_record",
    "set_session_cookie",
    "start_game",
    "strength_for",
]
