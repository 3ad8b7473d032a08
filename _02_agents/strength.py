"""CPU strength policies.

Each policy turns the classified moves of the acting side into one move:

- hard: shortest win, else a random draw, else the longest loss
- normal: mostly plays the best win but sometimes settles for a draw or a
  slow loss
- weak: hard 60% of the time, otherwise prefers a slow loss
- weakest: actively tries to hand the opponent the game

Random choices go through an injectable ``random.Random`` so tests can
seed them.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from _01_simulator import engine, rules, state
from _01_simulator.actions import Move

from .outcomes import MoveClassifier, MoveEvaluation, OutcomeBuckets, Perspective
from .tablebase.endgame import Outcome

logger = logging.getLogger(__name__)


class Strength(str, Enum):
    HARD = "hard"
    NORMAL = "normal"
    WEAK = "weak"
    WEAKEST = "weakest"

    @classmethod
    def parse(cls, value: str | Strength | None, default: Strength | None = None) -> Strength:
        """Parse a strength name, falling back to ``default`` (or hard).

        Raises:
            ValueError: If ``value`` is not a known strength.
        """
        if value is None or value == "":
            return default or cls.HARD
        if isinstance(value, Strength):
            return value
        return cls(str(value).strip().lower())


@dataclass
class StrengthConfig:
    """Probabilities and distance thresholds of the policies."""

    # normal
    win_keep: float = 0.7
    draw_prob: float = 0.2
    draw_keep: float = 0.9
    normal_min_loss_distance: int = 11

    # weak
    weak_hard_prob: float = 0.6
    weak_min_loss_distance: int = 5


# =============================================================================
# Pick Helpers
# =============================================================================

def pick_random(entries: Sequence[MoveEvaluation], rng: random.Random) -> MoveEvaluation | None:
    if not entries:
        return None
    return entries[rng.randrange(len(entries))]


def pick_best_win(entries: Sequence[MoveEvaluation]) -> MoveEvaluation | None:
    """Shortest distance first; the first generated move wins ties."""
    if not entries:
        return None
    return min(entries, key=lambda entry: entry.distance)


pick_shortest_distance = pick_best_win


def pick_longest_loss(entries: Sequence[MoveEvaluation]) -> MoveEvaluation | None:
    if not entries:
        return None
    return max(entries, key=lambda entry: entry.distance)


def pick_loss_with_min_distance(
    entries: Sequence[MoveEvaluation], min_distance: int
) -> MoveEvaluation | None:
    """Longest loss among those lasting at least ``min_distance`` plies."""
    return pick_longest_loss([entry for entry in entries if entry.distance >= min_distance])


def _first(*candidates: MoveEvaluation | None) -> MoveEvaluation | None:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


# =============================================================================
# Policy
# =============================================================================

class StrengthPolicy:
    """Selects moves for one strength setting.

    Args:
        strength: Strength to play at.
        classifier: Source of move outcomes (table first, search fallback).
        config: Policy probabilities; defaults to ``StrengthConfig()``.
        rng: Random source; defaults to an unseeded ``random.Random``.
    """

    def __init__(
        self,
        strength: Strength | str,
        classifier: MoveClassifier,
        config: StrengthConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.strength = Strength.parse(strength)
        self.classifier = classifier
        self.config = config or StrengthConfig()
        self._rng = rng or random.Random()

    def choose(self, game_state: state.State, actor: str) -> Move | None:
        """Choose a move for ``actor``, or ``None`` when it has no legal move."""
        legal = engine.generate_moves(game_state, actor)
        if not legal:
            logger.info("No legal moves for %s; game over", actor)
            return None

        evaluations = self.classifier.evaluate(game_state, actor, Perspective.ACTOR)
        choice: MoveEvaluation | None = None
        if evaluations:
            buckets = OutcomeBuckets.group(evaluations)
            if self.strength is Strength.WEAKEST:
                choice = self._choose_weakest(game_state, actor, buckets)
            else:
                choice = self.select_from_buckets(buckets, game_state, actor)

        if choice is None:
            logger.debug("No classified moves for %s; picking a random legal move", actor)
            return legal[self._rng.randrange(len(legal))]
        logger.debug(
            "%s (%s) picked %s/%d", actor, self.strength.value, choice.outcome.value, choice.distance
        )
        return choice.move

    def select_from_buckets(
        self, buckets: OutcomeBuckets, game_state: state.State, actor: str
    ) -> MoveEvaluation | None:
        """Apply the strength's bucket preferences."""
        rng = self._rng
        cfg = self.config
        if self.strength is Strength.HARD:
            choice = self._select_hard(buckets)
        elif self.strength is Strength.WEAK:
            if rng.random() < cfg.weak_hard_prob:
                choice = self._select_hard(buckets)
            else:
                choice = _first(
                    pick_loss_with_min_distance(buckets.loss, cfg.weak_min_loss_distance),
                    pick_longest_loss(buckets.loss),
                    pick_random(buckets.draw, rng),
                    pick_best_win(buckets.win),
                )
        else:
            choice = self._select_normal(buckets)

        if self.strength is Strength.WEAKEST:
            choice = self._weakest_fallback(buckets, game_state, actor, choice)

        return _first(
            choice,
            pick_random(buckets.win, rng),
            pick_random(buckets.draw, rng),
            pick_longest_loss(buckets.loss),
            buckets.all[0] if buckets.all else None,
        )

    def _select_hard(self, buckets: OutcomeBuckets) -> MoveEvaluation | None:
        return _first(
            pick_best_win(buckets.win),
            pick_random(buckets.draw, self._rng),
            pick_longest_loss(buckets.loss),
        )

    def _select_normal(self, buckets: OutcomeBuckets) -> MoveEvaluation | None:
        rng = self._rng
        cfg = self.config
        roll = rng.random()
        slow_loss = pick_loss_with_min_distance(buckets.loss, cfg.normal_min_loss_distance)

        if buckets.win:
            if roll < cfg.win_keep:
                return pick_best_win(buckets.win)
            if roll < cfg.win_keep + cfg.draw_prob:
                return _first(
                    pick_random(buckets.draw, rng),
                    slow_loss,
                    pick_longest_loss(buckets.loss),
                    pick_best_win(buckets.win),
                )
            return _first(
                slow_loss,
                pick_random(buckets.draw, rng),
                pick_longest_loss(buckets.loss),
                pick_best_win(buckets.win),
            )
        if buckets.draw:
            if roll < cfg.draw_keep or not buckets.loss:
                return pick_random(buckets.draw, rng)
            return _first(slow_loss, pick_random(buckets.draw, rng), pick_longest_loss(buckets.loss))
        return _first(slow_loss, pick_longest_loss(buckets.loss), pick_best_win(buckets.win))

    # -------------------------------------------------------------------------
    # Weakest
    # -------------------------------------------------------------------------

    def _choose_weakest(
        self, game_state: state.State, actor: str, buckets: OutcomeBuckets
    ) -> MoveEvaluation | None:
        forced = self.moves_forcing_opponent_win(buckets.all, game_state, actor)
        if forced:
            return pick_random(forced, self._rng)

        safe = self.filter_immediate_kills(buckets.all, game_state, actor)
        immediate = self.moves_allowing_immediate_opponent_win(safe, game_state, actor)
        if immediate:
            return pick_random(immediate, self._rng)

        opponent_view = self.classifier.evaluate(game_state, actor, Perspective.OPPONENT)
        opponent_wins = [entry for entry in opponent_view if entry.outcome is Outcome.WIN]
        if opponent_wins:
            return pick_shortest_distance(opponent_wins)

        return self.select_from_buckets(buckets, game_state, actor)

    def moves_forcing_opponent_win(
        self, entries: Sequence[MoveEvaluation], game_state: state.State, actor: str
    ) -> list[MoveEvaluation]:
        """Moves after which every opponent reply leaves ``actor`` in a table LOSS.

        Only the table can prove this; without a loaded table nothing qualifies.
        """
        if not self.classifier.has_table:
            return []
        responder = rules.opponent(actor)
        forced = []
        for entry in entries:
            after = engine.simulate_move(game_state, actor, entry.move)
            replies = engine.generate_moves(after, responder)
            if not replies:
                continue
            if all(self._reply_loses_for(after, responder, reply, actor) for reply in replies):
                forced.append(entry)
        return forced

    def _reply_loses_for(self, after: state.State, responder: str, reply: Move, actor: str) -> bool:
        resulting = engine.simulate_move(after, responder, reply)
        table_entry = self.classifier.table_entry(resulting, actor)
        return table_entry is not None and table_entry.outcome is Outcome.LOSS

    @staticmethod
    def filter_immediate_kills(
        entries: Sequence[MoveEvaluation], game_state: state.State, actor: str
    ) -> list[MoveEvaluation]:
        """Drop moves that kill both opponent hands outright."""
        responder = rules.opponent(actor)
        return [
            entry
            for entry in entries
            if not state.is_dead(engine.simulate_move(game_state, actor, entry.move).hands(responder))
        ]

    @staticmethod
    def moves_allowing_immediate_opponent_win(
        entries: Sequence[MoveEvaluation], game_state: state.State, actor: str
    ) -> list[MoveEvaluation]:
        """Moves after which some opponent reply kills both of ``actor``'s hands."""
        responder = rules.opponent(actor)
        result = []
        for entry in entries:
            after = engine.simulate_move(game_state, actor, entry.move)
            for reply in engine.generate_moves(after, responder):
                if state.is_dead(engine.simulate_move(after, responder, reply).hands(actor)):
                    result.append(entry)
                    break
        return result

    def _weakest_fallback(
        self,
        buckets: OutcomeBuckets,
        game_state: state.State,
        actor: str,
        choice: MoveEvaluation | None,
    ) -> MoveEvaluation | None:
        """Among moves that do not win outright: shortest loss, else any draw."""
        safe = self.filter_immediate_kills(buckets.all, game_state, actor)
        if safe:
            immediate = self.moves_allowing_immediate_opponent_win(safe, game_state, actor)
            if immediate:
                return pick_random(immediate, self._rng)
            safe_losses = [entry for entry in buckets.loss if entry in safe]
            if safe_losses:
                instant = [entry for entry in safe_losses if entry.distance == 0]
                return _first(pick_random(instant, self._rng), pick_shortest_distance(safe_losses))
            safe_draws = [entry for entry in buckets.draw if entry in safe]
            choice = _first(pick_random(safe_draws, self._rng), choice)
        return _first(choice, pick_random(safe, self._rng))


__all__ = [
    "Strength",
    "StrengthConfig",
    "StrengthPolicy",
    "pick_best_win",
    "pick_longest_loss",
    "pick_loss_with_min_distance",
    "pick_random",
    "pick_shortest_distance",
]
