"""Game session: the live state, whose turn it is and an append-only move history."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import engine, rules, state
from .actions import Attack, Move, Split, describe_move, move_to_dict
from .exceptions import GameAlreadyOverError, IllegalMoveError, InvalidSideError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoveRecord:
    """One committed move."""

    index: int
    side: str
    move: Move
    before: state.State
    after: state.State

    def to_dict(self) -> dict[str, object]:
        return {
            "index": self.index,
            "side": self.side,
            "move": move_to_dict(self.move),
            "label": describe_move(self.move),
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
        }


@dataclass(frozen=True)
class WinCheck:
    game_over: bool
    loser: str | None = None

    @property
    def player_lost(self) -> bool:
        return self.loser == rules.PLAYER


class GameSession:
    """Explicit owner of a game in progress.

    Every mutation reads the current state, computes the next one with the
    pure engine and commits it in one step, so two moves can never interleave.
    """

    def __init__(self, starting_side: str = rules.PLAYER, initial: state.State | None = None) -> None:
        if not rules.is_side(starting_side):
            raise InvalidSideError(starting_side)
        self._state = initial if initial is not None else state.initial_state()
        self._current_side = starting_side
        self._starting_side = starting_side
        self._history: list[MoveRecord] = []
        self._game_over = engine.is_terminal(self._state)

    @property
    def state(self) -> state.State:
        return self._state

    @property
    def current_side(self) -> str:
        return self._current_side

    @property
    def starting_side(self) -> str:
        return self._starting_side

    @property
    def game_over(self) -> bool:
        return self._game_over

    @property
    def history(self) -> tuple[MoveRecord, ...]:
        return tuple(self._history)

    @property
    def move_count(self) -> int:
        return len(self._history)

    def legal_moves(self) -> list[Move]:
        if self._game_over:
            return []
        return engine.generate_moves(self._state, self._current_side)

    def apply_attack(self, side: str, from_index: int, other_side: str, to_index: int) -> state.State:
        return self.apply_move(side, Attack(side, from_index, other_side, to_index))

    def apply_split(self, side: str, left: int, right: int) -> state.State:
        return self.apply_move(side, Split(side, left, right))

    def apply_move(self, side: str, move: Move) -> state.State:
        """Validate and commit ``move`` for ``side``. The turn is not switched.

        Raises:
            GameAlreadyOverError: If the game has ended.
            IllegalMoveError: If it is not ``side``'s turn or the move is illegal.
        """
        if self._game_over:
            raise GameAlreadyOverError()
        if side != self._current_side:
            raise IllegalMoveError(f"It is {self._current_side}'s turn, not {side}'s")

        before = self._state
        after = engine.simulate_move(before, side, move)
        self._history.append(MoveRecord(len(self._history) + 1, side, move, before, after))
        self._state = after
        logger.debug("Move %d: %s -> %s", len(self._history), describe_move(move), after)
        return after

    def switch_turn_to(self, side: str) -> None:
        if not rules.is_side(side):
            raise InvalidSideError(side)
        self._current_side = side

    def check_win(self) -> WinCheck:
        """Evaluate the current state and latch the game-over flag."""
        result = engine.check_terminal(self._state)
        if result.is_terminal:
            self._game_over = True
            return WinCheck(game_over=True, loser=result.loser)
        return WinCheck(game_over=False)

    def to_dict(self) -> dict[str, object]:
        win = engine.check_terminal(self._state)
        return {
            **self._state.to_dict(),
            "currentPlayer": self._current_side,
            "gameOver": self._game_over,
            "loser": win.loser if win.is_terminal else None,
            "moveCount": self.move_count,
        }


def new_game(starting_side: str = rules.PLAYER) -> GameSession:
    return GameSession(starting_side=starting_side)


__all__ = ["GameSession", "MoveRecord", "WinCheck", "new_game"]
