"""Retrograde analysis for tablebase generation.

Builds the complete outcome table backward from terminal positions:

1. Enumerate all 450 canonical (state, turn) keys
2. Build the position graph: distinct successor keys per position and
   predecessor keys computed by un-attack and un-split
3. Classify terminal positions (mover dead -> LOSS, opponent dead -> WIN)
4. Propagate layer by layer in order of distance:
   - A LOSS at distance d makes every unsolved predecessor a WIN at d + 1
   - A predecessor whose successors are all WIN becomes a LOSS at
     max(successor distance) + 1
5. Whatever is still unsolved only reaches cycles: DRAW

Forward search cannot prove draws cheaply in this game because positions
repeat, which is why the table is built backward.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path

from _01_simulator import engine, rules, state

from .endgame import Outcome, TablebaseEntry
from .enumerate import CanonicalKey, PositionEnumerator, PositionIndexer

logger = logging.getLogger(__name__)


@dataclass
class RetrogradeConfig:
    """Configuration for retrograde analysis."""

    log_interval: int = 5  # layers between progress messages
    draw_distance: int = 0  # distance recorded for DRAW entries


@dataclass
class RetrogradeStats:
    """Statistics from retrograde analysis."""

    total_positions: int = 0
    terminal_positions: int = 0
    win_positions: int = 0
    loss_positions: int = 0
    draw_positions: int = 0
    layers: int = 0
    max_distance: int = 0
    elapsed_seconds: float = 0.0

    @property
    def solved_positions(self) -> int:
        return self.win_positions + self.loss_positions + self.draw_positions


class RetrogradeTablebase:
    """Exact WIN/LOSS/DRAW classification of every canonical position."""

    def __init__(self, config: RetrogradeConfig | None = None):
        self.config = config or RetrogradeConfig()
        self.enumerator = PositionEnumerator()
        self.indexer = PositionIndexer()

        self._positions: dict[CanonicalKey, tuple[state.State, str]] = {}
        self._successors: dict[CanonicalKey, set[CanonicalKey]] = {}
        self._predecessors: dict[CanonicalKey, set[CanonicalKey]] = {}
        self._unresolved: dict[CanonicalKey, int] = {}
        self._entries: dict[CanonicalKey, TablebaseEntry] = {}

        self._stats = RetrogradeStats()
        self._generated = False

    def generate(self) -> RetrogradeStats:
        """Run the full analysis and return generation statistics."""
        start_time = time.time()
        self._stats = RetrogradeStats()
        logger.info("Starting retrograde analysis")

        logger.info("Phase 1: Enumerating positions...")
        self._enumerate_all_positions()

        logger.info("Phase 2: Building position graph...")
        self._build_position_graph()

        logger.info("Phase 3: Classifying terminal positions...")
        frontier = self._classify_terminal_positions()

        logger.info("Phase 4: Propagating values backward...")
        self._propagate_backward(frontier)
        self._classify_remaining_as_draw()

        self._stats.elapsed_seconds = time.time() - start_time
        self._generated = True
        logger.info(
            "Retrograde complete: %d positions (%d WIN, %d LOSS, %d DRAW) in %.2fs",
            self._stats.total_positions,
            self._stats.win_positions,
            self._stats.loss_positions,
            self._stats.draw_positions,
            self._stats.elapsed_seconds,
        )
        return self._stats

    def _enumerate_all_positions(self) -> None:
        self._positions.clear()
        self._entries.clear()
        for key, game_state, turn in self.enumerator.enumerate():
            self._positions[key] = (game_state, turn)
        self.indexer.build_index(self.enumerator)
        self._stats.total_positions = len(self._positions)
        logger.info("Enumerated %d unique positions", len(self._positions))

    def _build_position_graph(self) -> None:
        """Forward successor sets plus predecessor sets from un-moves."""
        self._successors = {key: set() for key in self._positions}
        self._predecessors = {key: set() for key in self._positions}

        for key, (game_state, turn) in self._positions.items():
            # Terminal positions have no moves; generating them would invent edges
            self._successors[key] = engine.successor_keys(game_state, turn)
            mover = rules.opponent(turn)
            self._predecessors[key] = {
                state.canonical_key(prior, mover)
                for prior in engine.generate_predecessors(game_state, turn)
            }

        self._unresolved = {key: len(succ) for key, succ in self._successors.items()}
        edges = sum(len(s) for s in self._successors.values())
        logger.info(
            "Built graph: %d edges, avg %.1f successors per position",
            edges,
            edges / max(1, len(self._successors)),
        )

    def _classify_terminal_positions(self) -> list[CanonicalKey]:
        frontier: list[CanonicalKey] = []
        for key, (game_state, turn) in self._positions.items():
            result = engine.check_terminal(game_state)
            if not result.is_terminal:
                continue
            if result.loser is None:
                outcome = Outcome.DRAW
            elif result.loser == turn:
                outcome = Outcome.LOSS
            else:
                outcome = Outcome.WIN
            self._set_entry(key, outcome, 0)
            frontier.append(key)

        self._stats.terminal_positions = len(frontier)
        logger.info(
            "Classified %d terminal positions: %d WIN, %d LOSS, %d DRAW",
            len(frontier),
            self._stats.win_positions,
            self._stats.loss_positions,
            self._stats.draw_positions,
        )
        return frontier

    def _propagate_backward(self, frontier: list[CanonicalKey]) -> None:
        """Breadth-first propagation; every layer holds one distance."""
        distance = 0
        while frontier:
            next_frontier: list[CanonicalKey] = []
            for key in frontier:
                outcome = self._entries[key].outcome
                for pred_key in sorted(self._predecessors[key]):
                    if pred_key in self._entries:
                        continue
                    if outcome is Outcome.LOSS:
                        self._set_entry(pred_key, Outcome.WIN, distance + 1)
                        next_frontier.append(pred_key)
                    elif outcome is Outcome.WIN:
                        self._unresolved[pred_key] -= 1
                        if self._unresolved[pred_key] == 0:
                            longest = max(self._entries[s].distance for s in self._successors[pred_key])
                            self._set_entry(pred_key, Outcome.LOSS, longest + 1)
                            next_frontier.append(pred_key)

            distance += 1
            frontier = next_frontier
            if frontier and distance % self.config.log_interval == 0:
                logger.info(
                    "Layer %d: +%d solved, %d/%d total",
                    distance,
                    len(frontier),
                    len(self._entries),
                    self._stats.total_positions,
                )

        self._stats.layers = distance

    def _classify_remaining_as_draw(self) -> None:
        remaining = [key for key in self._positions if key not in self._entries]
        for key in remaining:
            self._set_entry(key, Outcome.DRAW, self.config.draw_distance)
        if remaining:
            logger.info("Classified %d remaining positions as DRAW", len(remaining))

    def _set_entry(self, key: CanonicalKey, outcome: Outcome, distance: int) -> None:
        self._entries[key] = TablebaseEntry(outcome=outcome, distance=distance)
        if outcome is Outcome.WIN:
            self._stats.win_positions += 1
        elif outcome is Outcome.LOSS:
            self._stats.loss_positions += 1
        else:
            self._stats.draw_positions += 1
        self._stats.max_distance = max(self._stats.max_distance, distance)

    def _require_generated(self) -> None:
        if not self._generated:
            self.generate()

    def get_entry(self, key: CanonicalKey) -> TablebaseEntry | None:
        self._require_generated()
        return self._entries.get(key)

    def lookup(self, game_state: state.State, turn: str) -> TablebaseEntry | None:
        return self.get_entry(state.canonical_key(game_state, turn))

    def entries(self) -> dict[CanonicalKey, TablebaseEntry]:
        """Copy of the full key -> entry map."""
        self._require_generated()
        return dict(self._entries)

    def successors_of(self, key: CanonicalKey) -> frozenset[CanonicalKey]:
        self._require_generated()
        return frozenset(self._successors.get(key, ()))

    def predecessors_of(self, key: CanonicalKey) -> frozenset[CanonicalKey]:
        self._require_generated()
        return frozenset(self._predecessors.get(key, ()))

    def to_artifact(self) -> dict[CanonicalKey, dict[str, object]]:
        """JSON-ready ``{key: {"outcome": ..., "distance": ...}}`` map."""
        self._require_generated()
        return {key: entry.to_dict() for key, entry in self._entries.items()}

    def save(self, path: Path | str, packed: bool = False) -> Path:
        """Write the artifact as JSON, or as a packed ``.npy`` array.

        Args:
            path: Output file
            packed: Write the numpy packed format instead of JSON

        Returns:
            The written path
        """
        from .storage import PackedTablebase, dump_artifact

        self._require_generated()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if packed:
            table = PackedTablebase.from_entries(self._entries, indexer=self.indexer)
            path.write_bytes(table.to_bytes())
        else:
            path.write_text(dump_artifact(self._entries))
        logger.info("Saved tablebase to %s", path)
        return path

    def get_stats(self) -> RetrogradeStats:
        return self._stats

    def check_consistency(self) -> list[str]:
        """Re-check the backward-induction rules against forward move generation.

        Returns:
            Human readable violations (empty when the table is sound)
        """
        self._require_generated()
        violations: list[str] = []
        for key, (game_state, turn) in self._positions.items():
            entry = self._entries[key]
            if engine.is_terminal(game_state):
                if entry.distance != 0:
                    violations.append(f"{key}: terminal with distance {entry.distance}")
                continue

            children = [self._entries[s] for s in engine.successor_keys(game_state, turn)]
            if not children:
                violations.append(f"{key}: non-terminal position without moves")
                continue

            if entry.outcome is Outcome.WIN:
                if not any(c.outcome is Outcome.LOSS and c.distance == entry.distance - 1 for c in children):
                    violations.append(f"{key}: WIN {entry.distance} without a LOSS successor at distance - 1")
            elif entry.outcome is Outcome.LOSS:
                if not all(c.outcome is Outcome.WIN for c in children):
                    violations.append(f"{key}: LOSS with a non-WIN successor")
                elif max(c.distance for c in children) != entry.distance - 1:
                    violations.append(f"{key}: LOSS {entry.distance} does not delay to the longest successor")
            else:
                if any(c.outcome is Outcome.LOSS for c in children):
                    violations.append(f"{key}: DRAW with a LOSS successor")
                if all(c.outcome is Outcome.WIN for c in children):
                    violations.append(f"{key}: DRAW with only WIN successors")
        return violations

    def validate_against_forward(
        self,
        sample_size: int = 100,
        seed: int = 42,
        max_depth: int = 6,
    ) -> dict[str, int]:
        """Compare sampled decided positions with a bounded forward search.

        Only WIN/LOSS entries whose distance fits in ``max_depth`` are
        sampled; the search runs with exactly that many plies.

        Args:
            sample_size: Number of positions to validate
            seed: Random seed for sampling
            max_depth: Largest distance to check

        Returns:
            Dict with match/mismatch counts
        """
        from _02_agents.solver.search import SearchEngine

        self._require_generated()
        rng = random.Random(seed)
        search_engine = SearchEngine()

        candidates = sorted(
            key
            for key, entry in self._entries.items()
            if entry.outcome is not Outcome.DRAW and 0 < entry.distance <= max_depth
        )
        sample_keys = rng.sample(candidates, min(sample_size, len(candidates)))

        matches = 0
        mismatches = 0
        for key in sample_keys:
            entry = self._entries[key]
            game_state, turn = self._positions[key]
            result = search_engine.search(game_state, turn, entry.distance)
            if (result.outcome, result.distance) == (entry.outcome, entry.distance):
                matches += 1
            else:
                mismatches += 1
                logger.debug(
                    "Mismatch at %s: retro=%s/%d, forward=%s/%d",
                    key,
                    entry.outcome.value,
                    entry.distance,
                    result.outcome.value,
                    result.distance,
                )

        return {"matches": matches, "mismatches": mismatches, "total": len(sample_keys)}


def generate_retrograde_tablebase(
    output_path: Path | str | None = None,
    packed: bool = False,
    validate: bool = False,
) -> tuple[RetrogradeTablebase, RetrogradeStats]:
    """Generate the tablebase and optionally save it.

    Args:
        output_path: Optional path to save the artifact
        packed: Save the numpy packed format instead of JSON
        validate: Whether to check the result against forward search

    Returns:
        Tuple of (tablebase, stats)
    """
    tablebase = RetrogradeTablebase()
    stats = tablebase.generate()

    if validate:
        violations = tablebase.check_consistency()
        validation = tablebase.validate_against_forward()
        logger.info(
            "Validation: %d consistency violations, %d/%d forward matches",
            len(violations),
            validation["matches"],
            validation["total"],
        )

    if output_path is not None:
        tablebase.save(output_path, packed=packed)

    return tablebase, stats


__all__ = [
    "RetrogradeConfig",
    "RetrogradeStats",
    "RetrogradeTablebase",
    "generate_retrograde_tablebase",
]
