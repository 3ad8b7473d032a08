"""Serialization functions for the Number-BATTLE web service."""

from __future__ import annotations

from _01_simulator.actions import Move, describe_move, move_to_dict
from _01_simulator.simulate import MoveRecord  # noqa: TC001
from _04_ui.core.session import PlayerSession  # noqa: TC001


def serialize(session: PlayerSession) -> dict:
    """Serialize a session's game for the main game view."""
    game = session.require_game()
    history = game.history
    return {
        **game.to_dict(),
        "humanSide": session.human_side,
        "cpuStrength": session.cpu_strength.value if session.cpu_strength else None,
        "isAiTurn": not game.game_over and game.current_side == session.cpu_side,
        "legalMoves": [serialize_move(move) for move in game.legal_moves()],
        "history": [serialize_record(record) for record in history],
        "lastMove": serialize_record(history[-1]) if history else None,
    }


def serialize_move(move: Move) -> dict:
    """Serialize a move for the API response."""
    return {**move_to_dict(move), "label": describe_move(move)}


def serialize_record(record: MoveRecord) -> dict:
    return record.to_dict()
