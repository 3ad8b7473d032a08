"""Move definitions for the Number-BATTLE engine."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar

from . import rules
from .exceptions import IllegalMoveError


@dataclass(frozen=True)
class Attack:
    """Add the value of one of the mover's alive hands to an opposing alive hand.

    Indices always refer to the live, unsorted hands of the state the move
    is applied to, never to the sorted pair used for table lookups.
    """

    kind: ClassVar[str] = "attack"

    from_owner: str
    from_index: int
    to_owner: str
    to_index: int

    @property
    def owner(self) -> str:
        return self.from_owner


@dataclass(frozen=True)
class Split:
    """Redistribute the owner's total between both hands as ``(left, right)``."""

    kind: ClassVar[str] = "split"

    owner: str
    left: int
    right: int

    @property
    def values(self) -> tuple[int, int]:
        return self.left, self.right


Move = Attack | Split


def move_to_dict(move: Move) -> dict[str, object]:
    """Serialize a move to the wire shape shared by the offload channel and the API."""
    if isinstance(move, Attack):
        return {
            "type": Attack.kind,
            "from": move.from_owner,
            "fromIndex": move.from_index,
            "to": move.to_owner,
            "toIndex": move.to_index,
        }
    return {"type": Split.kind, "owner": move.owner, "values": [move.left, move.right]}


def move_from_dict(data: Mapping[str, object]) -> Move:
    """Parse the output of ``move_to_dict``.

    Raises:
        IllegalMoveError: If the payload does not describe an attack or a split.
    """
    kind = data.get("type") if isinstance(data, Mapping) else None
    try:
        if kind == Attack.kind:
            move: Move = Attack(
                from_owner=str(data["from"]),
                from_index=int(data["fromIndex"]),  # type: ignore[call-overload]
                to_owner=str(data["to"]),
                to_index=int(data["toIndex"]),  # type: ignore[call-overload]
            )
            owners = (move.from_owner, move.to_owner)
            indices = (move.from_index, move.to_index)
        elif kind == Split.kind:
            left, right = data["values"]  # type: ignore[misc]
            move = Split(owner=str(data["owner"]), left=int(left), right=int(right))
            owners = (move.owner,)
            indices = ()
        else:
            raise IllegalMoveError(f"Unknown move type {kind!r}")
    except (KeyError, TypeError, ValueError) as exc:
        raise IllegalMoveError(f"Malformed move payload {data!r}") from exc

    if not all(rules.is_side(owner) for owner in owners):
        raise IllegalMoveError(f"Move references an unknown side: {data!r}")
    if not all(0 <= index < rules.HANDS_PER_SIDE for index in indices):
        raise IllegalMoveError(f"Move references an unknown hand: {data!r}")
    return move


def describe_move(move: Move) -> str:
    """Short human readable label, e.g. ``"player L -> ai R"`` or ``"ai split 1/2"``."""
    if isinstance(move, Attack):
        hand = ("L", "R")
        return f"{move.from_owner} {hand[move.from_index]} -> {move.to_owner} {hand[move.to_index]}"
    return f"{move.owner} split {move.left}/{move.right}"


__all__ = ["Attack", "Move", "Split", "describe_move", "move_from_dict", "move_to_dict"]
