"""Systematic enumeration of canonical positions.

Each side's pair is stored sorted, which leaves 15 pairs per side and
15 * 15 * 2 = 450 (state, turn) keys in total.
"""

from __future__ import annotations

from collections.abc import Iterator

from _01_simulator import rules, state

CanonicalKey = str


def enumerate_hand_pairs() -> list[state.Hands]:
    """All sorted pairs ``(low, high)`` with values in [0, 4]."""
    values = range(rules.DEAD_HAND, rules.MAX_HAND_VALUE + 1)
    return [(low, high) for low in values for high in values if low <= high]


class PositionEnumerator:
    """Enumerates every canonical (state, turn) pair in a fixed order."""

    def enumerate(self) -> Iterator[tuple[CanonicalKey, state.State, str]]:
        """Yield ``(key, normalized_state, turn)`` triples."""
        pairs = enumerate_hand_pairs()
        for player in pairs:
            for ai in pairs:
                game_state = state.State(player_hands=player, ai_hands=ai)
                for turn in rules.SIDES:
                    yield state.canonical_key(game_state, turn), game_state, turn

    def count_positions(self) -> int:
        return sum(1 for _ in self.enumerate())


class PositionIndexer:
    """Maps canonical keys to dense indices for array storage."""

    def __init__(self) -> None:
        self._key_to_index: dict[CanonicalKey, int] = {}
        self._index_to_key: list[CanonicalKey] = []
        self._built = False

    def build_index(self, enumerator: PositionEnumerator | None = None) -> int:
        """Build the index.

        Args:
            enumerator: Source of keys (a fresh ``PositionEnumerator`` by default)

        Returns:
            Total number of positions indexed
        """
        enumerator = enumerator or PositionEnumerator()
        self._key_to_index.clear()
        self._index_to_key.clear()

        for key, _, _ in enumerator.enumerate():
            if key not in self._key_to_index:
                self._key_to_index[key] = len(self._index_to_key)
                self._index_to_key.append(key)

        self._built = True
        return len(self._index_to_key)

    def key_to_index(self, key: CanonicalKey) -> int | None:
        return self._key_to_index.get(key)

    def index_to_key(self, index: int) -> CanonicalKey | None:
        if 0 <= index < len(self._index_to_key):
            return self._index_to_key[index]
        return None

    @property
    def num_positions(self) -> int:
        """Total number of indexed positions."""
        return len(self._index_to_key)

    @property
    def is_built(self) -> bool:
        return self._built


def default_indexer() -> PositionIndexer:
    indexer = PositionIndexer()
    indexer.build_index()
    return indexer


__all__ = [
    "CanonicalKey",
    "PositionEnumerator",
    "PositionIndexer",
    "default_indexer",
    "enumerate_hand_pairs",
]
