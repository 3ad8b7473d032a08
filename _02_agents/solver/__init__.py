"""Bounded game-tree search for Number-BATTLE.

Used when no tablebase entry is available and for forced-win checks.
"""

from .search import (
    CYCLE_VALUE,
    DRAW_VALUE,
    WIN_VALUE,
    SearchConfig,
    SearchContext,
    SearchEngine,
    SearchResult,
    SearchStats,
    TTFlag,
    decode_value,
    evaluate_position,
    evaluate_terminal,
    order_moves,
)

__all__ = [
    "CYCLE_VALUE",
    "DRAW_VALUE",
    "SearchConfig",
    "SearchContext",
    "SearchEngine",
    "SearchResult",
    "SearchStats",
    "TTFlag",
    "WIN_VALUE",
    "decode_value",
    "evaluate_position",
    "evaluate_terminal",
    "order_moves",
]
