"""Game-theoretic outcome types shared by the tablebase, the search and the policies."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from _01_simulator.exceptions import TablebaseLoadError

# The legacy artifact stored draws with distance -1
LEGACY_DRAW_DISTANCE = -1


class Outcome(str, Enum):
    """Result from the perspective of the side to move."""

    WIN = "WIN"
    LOSS = "LOSS"
    DRAW = "DRAW"

    def invert(self) -> Outcome:
        """Same position seen by the other side."""
        if self is Outcome.WIN:
            return Outcome.LOSS
        if self is Outcome.LOSS:
            return Outcome.WIN
        return self


@dataclass(frozen=True)
class TablebaseEntry:
    """Exact classification of one canonical (state, turn) key."""

    outcome: Outcome
    distance: int  # plies to a terminal under optimal play, 0 at terminals

    def to_dict(self) -> dict[str, object]:
        return {"outcome": self.outcome.value, "distance": self.distance}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TablebaseEntry:
        """Parse one artifact value.

        Raises:
            TablebaseLoadError: If the outcome label or the distance is invalid.
        """
        if not isinstance(data, Mapping):
            raise TablebaseLoadError(f"Tablebase entry must be an object, got {data!r}")
        try:
            outcome = Outcome(data.get("outcome"))
        except ValueError as exc:
            raise TablebaseLoadError(f"Unknown outcome label {data.get('outcome')!r}") from exc

        distance = data.get("distance", 0)
        if distance is None:
            distance = 0
        if isinstance(distance, bool) or not isinstance(distance, int):
            raise TablebaseLoadError(f"Distance must be an integer, got {distance!r}")
        if distance == LEGACY_DRAW_DISTANCE and outcome is Outcome.DRAW:
            distance = 0
        if distance < 0:
            raise TablebaseLoadError(f"Distance must be non-negative, got {distance}")
        return cls(outcome=outcome, distance=distance)


__all__ = ["LEGACY_DRAW_DISTANCE", "Outcome", "TablebaseEntry"]
