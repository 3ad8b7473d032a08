"""Endgame tablebase for Number-BATTLE.

The game has only 450 canonical positions, so the whole game is solved
by retrograde analysis from terminal positions.

Modules:
- endgame: Outcome labels and tablebase entries
- enumerate: Position enumeration and dense indexing
- retrograde: Backward analysis from terminal positions
- storage: Packed storage and the async-loaded runtime store
"""

from __future__ import annotations

from .endgame import LEGACY_DRAW_DISTANCE, Outcome, TablebaseEntry
from .enumerate import (
    CanonicalKey,
    PositionEnumerator,
    PositionIndexer,
    default_indexer,
    enumerate_hand_pairs,
)
from .retrograde import (
    RetrogradeConfig,
    RetrogradeStats,
    RetrogradeTablebase,
    generate_retrograde_tablebase,
)
from .storage import (
    MAX_DISTANCE,
    PackedTablebase,
    StoredValue,
    TablebaseSource,
    TablebaseStore,
    dump_artifact,
    pack_entry,
    parse_artifact,
    unpack_entry,
)

__all__ = [
    # endgame
    "LEGACY_DRAW_DISTANCE",
    "Outcome",
    "TablebaseEntry",
    # enumerate
    "CanonicalKey",
    "PositionEnumerator",
    "PositionIndexer",
    "default_indexer",
    "enumerate_hand_pairs",
    # retrograde
    "RetrogradeConfig",
    "RetrogradeStats",
    "RetrogradeTablebase",
    "generate_retrograde_tablebase",
    # storage
    "MAX_DISTANCE",
    "PackedTablebase",
    "StoredValue",
    "TablebaseSource",
    "TablebaseStore",
    "dump_artifact",
    "pack_entry",
    "parse_artifact",
    "unpack_entry",
]
