"""Custom exception classes for the Number-BATTLE simulator."""

from __future__ import annotations


class NumberBattleError(Exception):
    """Base exception for all Number-BATTLE errors."""


class InvalidSideError(NumberBattleError):
    """Raised when a side name is neither ``player`` nor ``ai``."""

    def __init__(self, side: object) -> None:
        self.side = side
        super().__init__(f"Invalid side {side!r}. Must be 'player' or 'ai'.")


class InvalidStateError(NumberBattleError):
    """Raised when hands or a canonical key cannot describe a game state."""


class IllegalMoveError(NumberBattleError):
    """Raised when a move is not legal in the given state."""


class GameAlreadyOverError(NumberBattleError):
    """Raised when trying to move after the game has ended."""

    def __init__(self) -> None:
        super().__init__("Cannot move; game already finished")


class TablebaseLoadError(NumberBattleError):
    """Raised when a tablebase artifact cannot be fetched or parsed."""


class OffloadError(NumberBattleError):
    """Raised when a background worker answers a request with an error."""

    def __init__(self, request_id: int, message: str) -> None:
        self.request_id = request_id
        super().__init__(f"Offload request {request_id} failed: {message}")


__all__ = [
    "GameAlreadyOverError",
    "IllegalMoveError",
    "InvalidSideError",
    "InvalidStateError",
    "NumberBattleError",
    "OffloadError",
    "TablebaseLoadError",
]
