"""Bounded negamax search with alpha-beta pruning for Number-BATTLE.

Used when the tablebase has no entry for a position, and for forced-win
checks within a ply budget. It implements:
1. Negamax with alpha-beta pruning and distance-aware win/loss values
2. A heuristic evaluation at the depth horizon
3. Cycle detection through an immutable per-branch path
4. A bounded memo keyed by (canonical key, depth), owned by one search call

Values are from the perspective of the side to move. A win in ``d`` plies
is worth ``WIN_VALUE - d`` and a loss ``-WIN_VALUE + d``, so maximising
prefers the shortest win and the longest loss.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum

from _01_simulator import engine, rules, state
from _01_simulator.actions import Attack, Move, move_to_dict
from _01_simulator.exceptions import InvalidStateError

from _02_agents.tablebase.endgame import Outcome

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

INF = 1_000_000.0
WIN_VALUE = 100_000.0
DRAW_VALUE = 0.0
CYCLE_VALUE = DRAW_VALUE
MAX_PLY = 1_000  # any |value| beyond WIN_VALUE - MAX_PLY encodes a win or loss
HEURISTIC_SCALE = 1_000.0  # keeps horizon scores far below any win value

DEFAULT_MAX_DEPTH = 15
NO_CYCLE = 1 << 30  # ply sentinel for "no ancestor revisited"
DEFAULT_MEMO_SIZE = 200_000


class TTFlag(IntEnum):
    """Memo entry type."""

    EXACT = 0
    LOWER = 1  # fail-high
    UPPER = 2  # fail-low


# =============================================================================
# Evaluation Function
# =============================================================================

def evaluate_position(game_state: state.State, perspective: str) -> float:
    """Heuristic score of a non-terminal position for ``perspective``.

    Killing opponent hands dominates. A hand of 4 is a threat on either side
    (one more finger kills it), and an own total above 5 is penalised since
    it leaves few safe splits.
    """
    own = state.alive_hands(game_state.hands(perspective))
    other = state.alive_hands(game_state.hands(rules.opponent(perspective)))
    if not other:
        return 1e6
    if not own:
        return -1e6

    score = 0.0
    score += (rules.HANDS_PER_SIDE - len(other)) * 1000
    score -= (rules.HANDS_PER_SIDE - len(own)) * 1000
    score -= sum(150 if hand == rules.MAX_HAND_VALUE else hand * 10 for hand in other)
    score += sum(120 if hand == rules.MAX_HAND_VALUE else hand * 5 for hand in own)

    own_total = sum(own)
    if own_total > 5:
        score -= (own_total - 5) * 20
    return score


def evaluate_terminal(result: engine.TerminalResult, turn: str) -> float:
    if result.loser is None:
        return DRAW_VALUE
    return -WIN_VALUE if result.loser == turn else WIN_VALUE


def order_moves(game_state: state.State, moves: list[Move]) -> list[Move]:
    """Killing attacks first, then other attacks, then splits."""

    def priority(move: Move) -> int:
        if isinstance(move, Attack):
            source = game_state.hands(move.from_owner)[move.from_index]
            target = game_state.hands(move.to_owner)[move.to_index]
            return 0 if (source + target) % rules.HAND_MODULUS == 0 else 1
        return 2

    return sorted(moves, key=priority)


def _from_child(value: float) -> float:
    """Negate a child value and move win/loss values one ply further away."""
    parent = -value
    if parent > WIN_VALUE - MAX_PLY:
        return parent - 1
    if parent < -WIN_VALUE + MAX_PLY:
        return parent + 1
    return parent


def _to_child(bound: float) -> float:
    """Inverse of ``_from_child`` for search window bounds."""
    if bound > WIN_VALUE - MAX_PLY:
        bound += 1
    elif bound < -WIN_VALUE + MAX_PLY:
        bound -= 1
    return -bound


def decode_value(value: float) -> tuple[Outcome, int]:
    """Map a negamax value to (outcome, distance)."""
    if value > WIN_VALUE - MAX_PLY:
        return Outcome.WIN, int(round(WIN_VALUE - value))
    if value < -WIN_VALUE + MAX_PLY:
        return Outcome.LOSS, int(round(value + WIN_VALUE))
    return Outcome.DRAW, 0


# =============================================================================
# Memo and Search Context
# =============================================================================

@dataclass
class MemoEntry:
    value: float
    flag: TTFlag


@dataclass
class SearchStats:
    """Statistics from one search call."""

    nodes: int = 0
    cutoffs: int = 0
    memo_hits: int = 0
    cycles: int = 0


@dataclass
class SearchContext:
    """State owned by exactly one ``search`` call and discarded afterwards."""

    max_entries: int = DEFAULT_MEMO_SIZE
    memo: dict[tuple[str, int], MemoEntry] = field(default_factory=dict)
    stats: SearchStats = field(default_factory=SearchStats)

    def probe(self, key: str, depth: int, alpha: float, beta: float) -> float | None:
        entry = self.memo.get((key, depth))
        if entry is None:
            return None
        if (
            entry.flag == TTFlag.EXACT
            or (entry.flag == TTFlag.LOWER and entry.value >= beta)
            or (entry.flag == TTFlag.UPPER and entry.value <= alpha)
        ):
            self.stats.memo_hits += 1
            return entry.value
        return None

    def store(self, key: str, depth: int, value: float, flag: TTFlag) -> None:
        slot = (key, depth)
        if len(self.memo) >= self.max_entries and slot not in self.memo:
            # Evict the oldest entry
            self.memo.pop(next(iter(self.memo)))
        self.memo[slot] = MemoEntry(value, flag)


# =============================================================================
# Search
# =============================================================================

@dataclass(frozen=True)
class SearchResult:
    """Result of a search from the perspective of the side to move."""

    outcome: Outcome
    distance: int
    best_move: Move | None
    score: float
    nodes: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "outcome": self.outcome.value,
            "distance": self.distance,
            "bestMove": move_to_dict(self.best_move) if self.best_move is not None else None,
            "score": self.score,
            "nodes": self.nodes,
        }


@dataclass
class SearchConfig:
    """Configuration for the search engine."""

    default_depth: int = DEFAULT_MAX_DEPTH
    memo_size: int = DEFAULT_MEMO_SIZE


class SearchEngine:
    """Stateless front end; every call gets a fresh ``SearchContext``."""

    def __init__(self, config: SearchConfig | None = None) -> None:
        self.config = config or SearchConfig()

    def search(self, game_state: state.State, turn: str, depth: int | None = None) -> SearchResult:
        """Search ``depth`` plies from ``game_state`` with ``turn`` to move.

        Raises:
            InvalidStateError: If the state or turn is malformed.
        """
        if not state.is_valid_state(game_state) or not rules.is_side(turn):
            raise InvalidStateError(f"Cannot search malformed input {game_state!r} / {turn!r}")
        depth = self.config.default_depth if depth is None else max(0, depth)

        context = SearchContext(max_entries=self.config.memo_size)
        value, best_move, _ = self._negamax(context, game_state, turn, depth, -INF, INF, ())
        outcome, distance = decode_value(value)
        logger.debug(
            "search depth=%d turn=%s -> %s/%d (%d nodes, %d cutoffs, %d memo hits)",
            depth,
            turn,
            outcome.value,
            distance,
            context.stats.nodes,
            context.stats.cutoffs,
            context.stats.memo_hits,
        )
        return SearchResult(outcome, distance, best_move, value, context.stats.nodes)

    def is_forced_win(self, game_state: state.State, side: str, depth: int) -> bool:
        """Whether ``side``, to move, can force a win within ``depth`` plies."""
        return self.search(game_state, side, depth).outcome is Outcome.WIN

    def _negamax(
        self,
        context: SearchContext,
        game_state: state.State,
        turn: str,
        depth: int,
        alpha: float,
        beta: float,
        path: tuple[str, ...],
    ) -> tuple[float, Move | None, int]:
        """Alpha-beta negamax.

        ``path`` holds the keys of every ancestor, root first, so a key's
        index in it is its ply.

        Returns:
            Tuple of (value, best_move, lowest_hit). ``lowest_hit`` is the
            ply of the shallowest ancestor a cycle ran into, or ``NO_CYCLE``.
            A node only memoizes results that did not reach above itself.
        """
        context.stats.nodes += 1

        terminal = engine.check_terminal(game_state)
        if terminal.is_terminal:
            return evaluate_terminal(terminal, turn), None, NO_CYCLE

        if depth <= 0:
            return evaluate_position(game_state, turn) / HEURISTIC_SCALE, None, NO_CYCLE

        key = state.canonical_key(game_state, turn)
        if key in path:
            context.stats.cycles += 1
            return CYCLE_VALUE, None, path.index(key)

        cached = context.probe(key, depth, alpha, beta)
        if cached is not None:
            return cached, None, NO_CYCLE

        moves = order_moves(game_state, engine.generate_moves(game_state, turn))
        if not moves:
            # Cannot happen while both sides are alive; treat as an immediate loss
            return -WIN_VALUE, None, NO_CYCLE

        ply = len(path)
        child_path = path + (key,)
        next_turn = rules.opponent(turn)
        original_alpha = alpha
        best_value = -INF
        best_move: Move | None = moves[0]
        lowest_hit = NO_CYCLE

        for move in moves:
            child = engine.simulate_move(game_state, turn, move)
            child_value, _, child_hit = self._negamax(
                context,
                child,
                next_turn,
                depth - 1,
                _to_child(beta),
                _to_child(alpha),
                child_path,
            )
            lowest_hit = min(lowest_hit, child_hit)
            value = _from_child(child_value)

            if value > best_value:
                best_value = value
                best_move = move

            alpha = max(alpha, value)
            if alpha >= beta:
                context.stats.cutoffs += 1
                break

        if lowest_hit < ply:
            # Depends on an ancestor being on the path
            return best_value, best_move, lowest_hit

        if best_value <= original_alpha:
            flag = TTFlag.UPPER
        elif best_value >= beta:
            flag = TTFlag.LOWER
        else:
            flag = TTFlag.EXACT
        context.store(key, depth, best_value, flag)
        return best_value, best_move, NO_CYCLE


__all__ = [
    "CYCLE_VALUE",
    "DRAW_VALUE",
    "SearchConfig",
    "SearchContext",
    "SearchEngine",
    "SearchResult",
    "SearchStats",
    "WIN_VALUE",
    "decode_value",
    "evaluate_position",
    "order_moves",
]
