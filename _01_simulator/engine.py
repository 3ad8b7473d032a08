"""Rule engine entry points: move generation, move application and terminal checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import rules, state
from .actions import Attack, Move, Split
from .exceptions import IllegalMoveError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerminalResult:
    """Outcome of ``check_terminal``.

    ``loser`` is ``None`` both for ongoing games and for the degenerate
    position where both sides are dead at once.
    """

    is_terminal: bool
    loser: str | None = None
    player_lost: bool = False
    ai_lost: bool = False


NOT_TERMINAL = TerminalResult(is_terminal=False)


def compute_possible_splits(total: int, current: tuple[int, int]) -> list[tuple[int, int]]:
    """Return the ``(left, right)`` pairs with ``left <= right`` summing to ``total``.

    The current arrangement and its mirror are excluded so that no split is a
    no-op. Totals of 0 produce nothing.
    """
    if total <= 0:
        return []
    mirrored = (current[1], current[0])
    splits = []
    for left in range(total // 2 + 1):
        right = total - left
        if right > rules.MAX_HAND_VALUE:
            continue
        pair = (left, right)
        if pair == tuple(current) or pair == mirrored:
            continue
        splits.append(pair)
    return splits


def generate_moves(game_state: state.State, actor: str) -> list[Move]:
    """Return all legal moves of ``actor``: attacks first, then splits.

    Malformed input yields an empty list instead of an exception.
    """
    if not state.is_valid_state(game_state) or not rules.is_side(actor):
        logger.warning("generate_moves called with malformed input: %r, actor=%r", game_state, actor)
        return []

    target = rules.opponent(actor)
    own = game_state.hands(actor)
    other = game_state.hands(target)

    moves: list[Move] = []
    for from_index, source in enumerate(own):
        if source == rules.DEAD_HAND:
            continue
        for to_index, value in enumerate(other):
            if value == rules.DEAD_HAND:
                continue
            moves.append(Attack(actor, from_index, target, to_index))

    for left, right in compute_possible_splits(sum(own), own):
        moves.append(Split(actor, left, right))
    return moves


def simulate_move(game_state: state.State, turn: str, move: Move) -> state.State:
    """Apply ``move`` for the side ``turn`` and return the new state.

    The turn is not flipped; callers continue with ``rules.opponent(turn)``.

    Raises:
        IllegalMoveError: If the move does not belong to ``turn`` or breaks the rules.
    """
    if move.owner != turn:
        raise IllegalMoveError(f"{move.owner} cannot move on {turn}'s turn")

    if isinstance(move, Attack):
        if move.to_owner == move.from_owner:
            raise IllegalMoveError("Attacks must target the opposing side")
        if not (0 <= move.from_index < rules.HANDS_PER_SIDE and 0 <= move.to_index < rules.HANDS_PER_SIDE):
            raise IllegalMoveError(f"Hand index out of range in {move}")
        source = game_state.hands(move.from_owner)[move.from_index]
        target = game_state.hands(move.to_owner)[move.to_index]
        if source == rules.DEAD_HAND or target == rules.DEAD_HAND:
            raise IllegalMoveError("Attacks need an alive source and an alive target")
        return state.with_hand(
            game_state, move.to_owner, move.to_index, (target + source) % rules.HAND_MODULUS
        )

    current = game_state.hands(move.owner)
    legal = compute_possible_splits(sum(current), current)
    if (min(move.left, move.right), max(move.left, move.right)) not in legal:
        raise IllegalMoveError(f"Split {move.left}/{move.right} is not legal from {current}")
    return state.with_hands(game_state, move.owner, (move.left, move.right))


def check_terminal(game_state: state.State) -> TerminalResult:
    """A side has lost when both of its hands are dead."""
    if not state.is_valid_state(game_state):
        logger.warning("check_terminal called with malformed state: %r", game_state)
        return NOT_TERMINAL

    player_lost = state.is_dead(game_state.player_hands)
    ai_lost = state.is_dead(game_state.ai_hands)
    if not (player_lost or ai_lost):
        return NOT_TERMINAL
    if player_lost and ai_lost:
        return TerminalResult(is_terminal=True, loser=None, player_lost=True, ai_lost=True)
    loser = rules.PLAYER if player_lost else rules.AI
    return TerminalResult(is_terminal=True, loser=loser, player_lost=player_lost, ai_lost=ai_lost)


def is_terminal(game_state: state.State) -> bool:
    return check_terminal(game_state).is_terminal


def successors(game_state: state.State, turn: str) -> list[tuple[Move, state.State]]:
    """Pairs of (move, resulting state) for every legal move of ``turn``."""
    return [(move, simulate_move(game_state, turn, move)) for move in generate_moves(game_state, turn)]


def successor_keys(game_state: state.State, turn: str) -> set[str]:
    """Distinct canonical keys reachable in one move, with the opponent to move."""
    if is_terminal(game_state):
        return set()
    nxt = rules.opponent(turn)
    return {state.canonical_key(after, nxt) for _, after in successors(game_state, turn)}


def generate_predecessors(game_state: state.State, turn: str) -> list[state.State]:
    """States, with the opponent of ``turn`` to move, one legal move away from ``game_state``.

    Inverts attacks (the prior target is ``(target - source) mod 5`` and must
    have been alive) and splits (any other split of the same total). Results
    are normalized, deduplicated and never terminal.
    """
    mover = rules.opponent(turn)
    mover_hands = game_state.hands(mover)
    target_hands = game_state.hands(turn)

    candidates: list[state.State] = []
    for source in mover_hands:
        if source == rules.DEAD_HAND:
            continue
        for to_index, value in enumerate(target_hands):
            prior = (value - source) % rules.HAND_MODULUS
            if prior == rules.DEAD_HAND:
                continue
            candidates.append(state.with_hand(game_state, turn, to_index, prior))

    for pair in compute_possible_splits(sum(mover_hands), mover_hands):
        candidates.append(state.with_hands(game_state, mover, pair))

    seen: set[str] = set()
    predecessors = []
    for candidate in candidates:
        if is_terminal(candidate):
            continue
        key = state.canonical_key(candidate, mover)
        if key in seen:
            continue
        seen.add(key)
        predecessors.append(state.normalize(candidate))
    return predecessors


__all__ = [
    "NOT_TERMINAL",
    "TerminalResult",
    "check_terminal",
    "compute_possible_splits",
    "generate_moves",
    "generate_predecessors",
    "is_terminal",
    "simulate_move",
    "successor_keys",
    "successors",
]
