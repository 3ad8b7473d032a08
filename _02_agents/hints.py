"""Hint analysis for the human side."""

from __future__ import annotations

import logging

from _01_simulator import rules, state

from .outcomes import MoveClassifier, MoveEvaluation, Perspective
from .solver.search import SearchEngine, SearchResult

logger = logging.getLogger(__name__)

HINT_SEARCH_DEPTH = 15


class HintAnalyzer:
    """Explains the outcome of each legal move.

    Args:
        classifier: Move classifier (table first, search fallback).
        engine: Engine for ``best_line``; defaults to the classifier's.
    """

    def __init__(self, classifier: MoveClassifier, engine: SearchEngine | None = None) -> None:
        self.classifier = classifier
        self.engine = engine or classifier.engine or SearchEngine()

    def analyze_moves(
        self,
        game_state: state.State,
        acting_side: str,
        perspective_side: str | None = None,
    ) -> list[MoveEvaluation]:
        """Classify every legal move of ``acting_side``.

        Args:
            game_state: Current position.
            acting_side: Side whose moves are listed.
            perspective_side: Side the outcomes are expressed for; defaults
                to the acting side.

        Returns:
            One evaluation per classifiable legal move. Empty when the game
            is over or nothing could be classified.
        """
        perspective_side = perspective_side or acting_side
        rules.opponent(perspective_side)  # validates the side name
        perspective = Perspective.ACTOR if perspective_side == acting_side else Perspective.OPPONENT
        return self.classifier.evaluate(game_state, acting_side, perspective)

    def best_line(self, game_state: state.State, side: str, depth: int = HINT_SEARCH_DEPTH) -> SearchResult:
        """Search the best move for ``side`` to move, within ``depth`` plies."""
        result = self.engine.search(game_state, side, depth)
        logger.debug("Hint search for %s at depth %d: %s", side, depth, result.outcome.value)
        return result


__all__ = ["HINT_SEARCH_DEPTH", "HintAnalyzer"]
