"""CPU opponent and turn driver."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence

from _01_simulator import engine, rules, state
from _01_simulator.actions import Move, describe_move, move_from_dict
from _01_simulator.exceptions import GameAlreadyOverError
from _01_simulator.simulate import GameSession

from .base import Agent, ensure_legal
from .offload import SearchOffload
from .outcomes import MoveClassifier
from .strength import Strength, StrengthConfig, StrengthPolicy

logger = logging.getLogger(__name__)


def resolve_strength(
    forced: str | Strength | None = None,
    requested: str | Strength | None = None,
    default: str | Strength = Strength.HARD,
) -> Strength:
    """Forced strength wins over the requested one, which wins over the default.

    Raises:
        ValueError: If the winning value is not a known strength.
    """
    for candidate in (forced, requested):
        if candidate:
            return Strength.parse(candidate)
    return Strength.parse(default)


class CpuPlayer(Agent):
    """Computer opponent driven by a strength policy.

    Args:
        classifier: Move classifier shared with hints.
        strength: Difficulty to play at.
        side: Side the CPU plays.
        config: Strength policy probabilities.
        rng: Random source for the policy.
        offload: Optional channel; when set, moves are chosen on the worker.
    """

    def __init__(
        self,
        classifier: MoveClassifier,
        strength: Strength | str = Strength.HARD,
        side: str = rules.AI,
        config: StrengthConfig | None = None,
        rng: random.Random | None = None,
        offload: SearchOffload | None = None,
    ) -> None:
        rules.opponent(side)
        self.side = side
        self.classifier = classifier
        self.offload = offload
        self._rng = rng or random.Random()
        self.policy = StrengthPolicy(strength, classifier, config, self._rng)

    @property
    def strength(self) -> Strength:
        return self.policy.strength

    @property
    def name(self) -> str:
        return f"CpuPlayer({self.strength.value})"

    def select_move(self, game_state: state.State, legal_moves: Sequence[Move]) -> Move:
        """Pick one of ``legal_moves`` for the CPU side.

        Raises:
            GameAlreadyOverError: If the CPU has no legal move.
        """
        move = self.policy.choose(game_state, self.side)
        if move is None:
            raise GameAlreadyOverError()
        return ensure_legal(move, legal_moves)

    async def _choose(self, game_state: state.State) -> Move | None:
        if self.offload is None:
            return self.policy.choose(game_state, self.side)
        seed = self._rng.randrange(2**32)
        payload = await self.offload.choose_move(game_state, self.side, self.strength, seed)
        return move_from_dict(payload) if payload is not None else None

    async def ai_turn_wrapper(self, get_current_state: Callable[[], state.State]) -> Move | None:
        """Choose the CPU's move for the position returned by ``get_current_state``.

        Waits for the tablebase to finish loading first, so the first turn
        of a session can still use it. Loading problems are not fatal; the
        policy then classifies moves by search.

        Returns:
            The chosen move, or ``None`` when the game is already over.
        """
        game_state = get_current_state()
        if engine.is_terminal(game_state) or not engine.generate_moves(game_state, self.side):
            return None

        store = self.classifier.store
        if store is not None and not store.is_loaded:
            await store.load()

        return await self._choose(game_state)

    async def play_turn(self, session: GameSession) -> Move | None:
        """Play the CPU's turn in ``session``: commit, check the win, hand over.

        Returns:
            The move played, or ``None`` when the game was over.
        """
        if session.game_over:
            return None
        if session.current_side != self.side:
            logger.warning("play_turn called on %s's turn", session.current_side)
            return None

        move = await self.ai_turn_wrapper(lambda: session.state)
        if move is None:
            session.check_win()
            return None

        session.apply_move(self.side, move)
        logger.info("%s played %s", self.name, describe_move(move))
        if not session.check_win().game_over:
            session.switch_turn_to(rules.opponent(self.side))
        return move


__all__ = ["CpuPlayer", "resolve_strength"]
