"""Immutable game state representations and helpers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace

from . import rules
from .exceptions import InvalidStateError

Hands = tuple[int, int]


def _coerce_hands(value: object, label: str) -> Hands:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise InvalidStateError(f"{label} must be a pair of integers, got {value!r}")
    if len(value) != rules.HANDS_PER_SIDE:
        raise InvalidStateError(f"{label} must hold exactly {rules.HANDS_PER_SIDE} hands, got {len(value)}")
    hands = []
    for hand in value:
        if isinstance(hand, bool) or not isinstance(hand, int):
            raise InvalidStateError(f"{label} contains a non-integer hand {hand!r}")
        if not rules.DEAD_HAND <= hand <= rules.MAX_HAND_VALUE:
            raise InvalidStateError(f"{label} hand {hand} outside [0, {rules.MAX_HAND_VALUE}]")
        hands.append(hand)
    return hands[0], hands[1]


@dataclass(frozen=True)
class State:
    """Hands of both sides. Whose turn it is lives outside the state."""

    player_hands: Hands
    ai_hands: Hands

    def __post_init__(self) -> None:
        object.__setattr__(self, "player_hands", _coerce_hands(self.player_hands, "player_hands"))
        object.__setattr__(self, "ai_hands", _coerce_hands(self.ai_hands, "ai_hands"))

    def hands(self, side: str) -> Hands:
        if side == rules.PLAYER:
            return self.player_hands
        if side == rules.AI:
            return self.ai_hands
        raise InvalidStateError(f"Unknown side {side!r}")

    def to_dict(self) -> dict[str, list[int]]:
        return {"playerHands": list(self.player_hands), "aiHands": list(self.ai_hands)}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> State:
        """Build a state from ``{"playerHands": [..], "aiHands": [..]}``.

        Raises:
            InvalidStateError: If either pair is missing or out of range.
        """
        if not isinstance(data, Mapping):
            raise InvalidStateError(f"State payload must be a mapping, got {type(data).__name__}")
        try:
            player = data["playerHands"] if "playerHands" in data else data["player_hands"]
            ai = data["aiHands"] if "aiHands" in data else data["ai_hands"]
        except KeyError as exc:
            raise InvalidStateError(f"State payload missing {exc.args[0]!r}") from exc
        return cls(player_hands=player, ai_hands=ai)  # type: ignore[arg-type]


def initial_state() -> State:
    """Both sides start with one finger on each hand."""
    return State(player_hands=rules.INITIAL_HANDS, ai_hands=rules.INITIAL_HANDS)


def with_hands(game_state: State, side: str, hands: Sequence[int]) -> State:
    """Return a copy of ``game_state`` with ``side``'s pair replaced."""
    if side == rules.PLAYER:
        return replace(game_state, player_hands=tuple(hands))
    if side == rules.AI:
        return replace(game_state, ai_hands=tuple(hands))
    raise InvalidStateError(f"Unknown side {side!r}")


def with_hand(game_state: State, side: str, index: int, value: int) -> State:
    hands = list(game_state.hands(side))
    hands[index] = value
    return with_hands(game_state, side, hands)


def is_dead(hands: Sequence[int]) -> bool:
    return all(hand == rules.DEAD_HAND for hand in hands)


def alive_hands(hands: Sequence[int]) -> list[int]:
    return [hand for hand in hands if hand != rules.DEAD_HAND]


def normalize_hands(hands: Sequence[int]) -> Hands:
    low, high = sorted(hands)
    return low, high


def normalize(game_state: State) -> State:
    """Sort each side's pair ascending; hand identity does not matter for outcomes."""
    return State(
        player_hands=normalize_hands(game_state.player_hands),
        ai_hands=normalize_hands(game_state.ai_hands),
    )


def canonical_key(game_state: State, turn: str) -> str:
    """Lookup key ``"p0,p1|a0,a1|turn"`` with each pair sorted ascending."""
    if not rules.is_side(turn):
        raise InvalidStateError(f"Unknown turn {turn!r}")
    player = normalize_hands(game_state.player_hands)
    ai = normalize_hands(game_state.ai_hands)
    return f"{player[0]},{player[1]}|{ai[0]},{ai[1]}|{turn}"


def parse_key(key: str) -> tuple[State, str]:
    """Inverse of ``canonical_key``; the returned state is normalized.

    Raises:
        InvalidStateError: If the key is not of the form ``"a,b|c,d|turn"``.
    """
    parts = key.split("|") if isinstance(key, str) else []
    if len(parts) != 3:
        raise InvalidStateError(f"Malformed tablebase key {key!r}")
    player_part, ai_part, turn = parts
    if not rules.is_side(turn):
        raise InvalidStateError(f"Malformed tablebase key {key!r}: unknown turn")
    try:
        player = tuple(int(value) for value in player_part.split(","))
        ai = tuple(int(value) for value in ai_part.split(","))
    except ValueError as exc:
        raise InvalidStateError(f"Malformed tablebase key {key!r}") from exc
    game_state = State(player_hands=player, ai_hands=ai)  # type: ignore[arg-type]
    if canonical_key(game_state, turn) != key:
        raise InvalidStateError(f"Tablebase key {key!r} is not canonical")
    return game_state, turn


def is_valid_state(game_state: object) -> bool:
    """Structural check used by the defensive entry points."""
    if not isinstance(game_state, State):
        return False
    try:
        _coerce_hands(game_state.player_hands, "player_hands")
        _coerce_hands(game_state.ai_hands, "ai_hands")
    except InvalidStateError:
        return False
    return True


__all__ = [
    "Hands",
    "State",
    "alive_hands",
    "canonical_key",
    "initial_state",
    "is_dead",
    "is_valid_state",
    "normalize",
    "normalize_hands",
    "parse_key",
    "with_hand",
    "with_hands",
]
