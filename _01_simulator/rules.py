"""Core rule constants for the Number-BATTLE chopsticks game."""

from __future__ import annotations

from .exceptions import InvalidSideError

# Side identifiers, also used verbatim in canonical keys and wire payloads.
PLAYER = "player"
AI = "ai"
SIDES: tuple[str, str] = (PLAYER, AI)

HANDS_PER_SIDE = 2
HAND_MODULUS = 5  # attacks wrap modulo this value; reaching it kills the hand
MAX_HAND_VALUE = HAND_MODULUS - 1
DEAD_HAND = 0
INITIAL_HANDS: tuple[int, int] = (1, 1)


def opponent(side: str) -> str:
    """Return the other side."""
    if side == PLAYER:
        return AI
    if side == AI:
        return PLAYER
    raise InvalidSideError(side)


def is_side(value: object) -> bool:
    return value in SIDES


__all__ = [
    "AI",
    "DEAD_HAND",
    "HANDS_PER_SIDE",
    "HAND_MODULUS",
    "INITIAL_HANDS",
    "MAX_HAND_VALUE",
    "PLAYER",
    "SIDES",
    "is_side",
    "opponent",
]
