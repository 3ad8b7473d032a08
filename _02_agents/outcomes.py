"""Move outcome classification.

Every legal move of the acting side is simulated and the resulting
position (opponent to move) is looked up in the tablebase. When the table
has no entry (not loaded yet, or a partial artifact) the position is
searched instead. Outcomes are reported from either the actor's or the
opponent's point of view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from _01_simulator import engine, rules, state
from _01_simulator.actions import Move, move_to_dict

from .solver.search import SearchEngine
from .tablebase.endgame import Outcome, TablebaseEntry
from .tablebase.storage import TablebaseStore

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_DEPTH = 8


class Perspective(str, Enum):
    """Whose point of view a classified outcome is expressed from."""

    ACTOR = "actor"
    OPPONENT = "opponent"


@dataclass(frozen=True)
class MoveEvaluation:
    """A legal move with the outcome of the position it leads to."""

    move: Move
    outcome: Outcome
    distance: int
    key: str
    source: str = "table"  # "table" or "search"

    def to_dict(self) -> dict[str, object]:
        return {
            "move": move_to_dict(self.move),
            "outcome": self.outcome.value,
            "distance": self.distance,
            "key": self.key,
            "source": self.source,
        }


@dataclass
class OutcomeBuckets:
    """Evaluations grouped by outcome, keeping generation order."""

    win: list[MoveEvaluation] = field(default_factory=list)
    draw: list[MoveEvaluation] = field(default_factory=list)
    loss: list[MoveEvaluation] = field(default_factory=list)
    all: list[MoveEvaluation] = field(default_factory=list)

    @classmethod
    def group(cls, evaluations: list[MoveEvaluation]) -> OutcomeBuckets:
        buckets = cls(all=list(evaluations))
        for evaluation in evaluations:
            if evaluation.outcome is Outcome.WIN:
                buckets.win.append(evaluation)
            elif evaluation.outcome is Outcome.DRAW:
                buckets.draw.append(evaluation)
            else:
                buckets.loss.append(evaluation)
        return buckets


class MoveClassifier:
    """Classifies moves using the tablebase, falling back to search.

    Args:
        store: Loaded (or loading) tablebase store. May be ``None``.
        engine: Search engine used for positions missing from the table.
            With no engine, such moves are left out of the result.
        search_depth: Ply budget for fallback searches.
    """

    def __init__(
        self,
        store: TablebaseStore | None = None,
        engine: SearchEngine | None = None,
        search_depth: int = DEFAULT_FALLBACK_DEPTH,
    ) -> None:
        self.store = store
        self.engine = engine
        self.search_depth = search_depth

    @property
    def has_table(self) -> bool:
        return self.store is not None and self.store.is_loaded

    def table_entry(self, game_state: state.State, turn: str) -> TablebaseEntry | None:
        """Table entry for ``game_state`` with ``turn`` to move, if any."""
        if self.store is None:
            return None
        return self.store.lookup(state.canonical_key(game_state, turn))

    def evaluate(
        self,
        game_state: state.State,
        actor: str,
        perspective: Perspective = Perspective.ACTOR,
    ) -> list[MoveEvaluation]:
        """Evaluate every legal move of ``actor``.

        Args:
            game_state: Position before the move.
            actor: Side making the move.
            perspective: Express outcomes for the actor (inverted table
                outcome) or for the opponent (raw table outcome).

        Returns:
            One evaluation per classifiable move, in generation order.
        """
        moves = engine.generate_moves(game_state, actor)
        if not moves:
            return []

        responder = rules.opponent(actor)
        evaluations: list[MoveEvaluation] = []
        for move in moves:
            child = engine.simulate_move(game_state, actor, move)
            key = state.canonical_key(child, responder)
            classified = self._classify(child, responder, key)
            if classified is None:
                continue
            outcome, distance, source = classified
            if perspective is Perspective.ACTOR:
                outcome = outcome.invert()
            evaluations.append(MoveEvaluation(move, outcome, distance, key, source))
        return evaluations

    def _classify(
        self, child: state.State, responder: str, key: str
    ) -> tuple[Outcome, int, str] | None:
        entry = self.store.lookup(key) if self.store is not None else None
        if entry is not None:
            return entry.outcome, entry.distance, "table"
        if self.engine is None:
            return None
        result = self.engine.search(child, responder, self.search_depth)
        logger.debug("No table entry for %s, searched to %s/%d", key, result.outcome.value, result.distance)
        return result.outcome, result.distance, "search"


__all__ = [
    "DEFAULT_FALLBACK_DEPTH",
    "MoveClassifier",
    "MoveEvaluation",
    "OutcomeBuckets",
    "Perspective",
]
