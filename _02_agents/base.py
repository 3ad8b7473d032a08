"""Base agent interface and type definitions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from _01_simulator import state
from _01_simulator.actions import Move
from _01_simulator.exceptions import IllegalMoveError

AgentFn = Callable[[state.State, Sequence[Move]], Move]


class Agent(ABC):
    """Abstract base class for Number-BATTLE agents."""

    @abstractmethod
    def select_move(
        self,
        game_state: state.State,
        legal_moves: Sequence[Move],
    ) -> Move:
        """Select a move from the available legal moves.

        Args:
            game_state: The current game state.
            legal_moves: Available legal moves to choose from.

        Returns:
            The selected move.
        """
        ...

    def __call__(
        self,
        game_state: state.State,
        legal_moves: Sequence[Move],
    ) -> Move:
        """Make the agent callable to satisfy AgentFn interface."""
        return self.select_move(game_state, legal_moves)

    @property
    def name(self) -> str:
        """Return the agent's name for display purposes."""
        return self.__class__.__name__


def ensure_legal(move: Move, legal_moves: Sequence[Move]) -> Move:
    """Return ``move`` if it is one of ``legal_moves``.

    Raises:
        IllegalMoveError: Otherwise.
    """
    if move not in legal_moves:
        raise IllegalMoveError(f"Agent selected illegal move {move!r}")
    return move


__all__ = ["Agent", "AgentFn", "ensure_legal"]
