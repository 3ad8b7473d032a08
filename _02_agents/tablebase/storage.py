"""Tablebase storage and the runtime store.

Packed format (one ``uint16`` per canonical position, indexed by
``PositionIndexer``):
- Bits 0-1: Value (UNKNOWN=0/WIN=1/LOSS=2/DRAW=3)
- Bits 2-15: Distance to end (0-16383)

The JSON artifact maps ``"h1,h2|h3,h4|turn"`` to
``{"outcome": "WIN"|"LOSS"|"DRAW", "distance": n}``. ``TablebaseStore``
accepts either format, from a path, a URL, raw bytes or a mapping.
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
from collections.abc import Callable, Mapping
from enum import IntEnum
from pathlib import Path

import aiohttp
import numpy as np

from _01_simulator import state
from _01_simulator.exceptions import TablebaseLoadError

from .endgame import Outcome, TablebaseEntry
from .enumerate import CanonicalKey, PositionIndexer, default_indexer

logger = logging.getLogger(__name__)

# Storage constants
VALUE_MASK = 0x0003
DISTANCE_SHIFT = 2
MAX_DISTANCE = 0xFFFF >> DISTANCE_SHIFT
NPY_MAGIC = b"\x93NUMPY"

TablebaseSource = str | Path | bytes | bytearray | Mapping[str, object]
LoadedListener = Callable[["TablebaseStore"], None]


class StoredValue(IntEnum):
    """Stored value encoding (fits in 2 bits)."""

    UNKNOWN = 0
    WIN = 1
    LOSS = 2
    DRAW = 3


_OUTCOME_TO_STORED = {
    Outcome.WIN: StoredValue.WIN,
    Outcome.LOSS: StoredValue.LOSS,
    Outcome.DRAW: StoredValue.DRAW,
}
_STORED_TO_OUTCOME = {stored: outcome for outcome, stored in _OUTCOME_TO_STORED.items()}


def pack_entry(entry: TablebaseEntry) -> int:
    """Pack an entry into 16 bits.

    Raises:
        ValueError: If the distance does not fit in 14 bits.
    """
    if not 0 <= entry.distance <= MAX_DISTANCE:
        raise ValueError(f"Distance {entry.distance} does not fit in the packed format")
    return int(_OUTCOME_TO_STORED[entry.outcome]) | (entry.distance << DISTANCE_SHIFT)


def unpack_entry(packed: int) -> TablebaseEntry | None:
    """Unpack a 16-bit value; ``None`` for UNKNOWN slots."""
    stored = StoredValue(packed & VALUE_MASK)
    if stored is StoredValue.UNKNOWN:
        return None
    return TablebaseEntry(outcome=_STORED_TO_OUTCOME[stored], distance=packed >> DISTANCE_SHIFT)


class PackedTablebase:
    """Dense numpy array of packed entries, one slot per canonical key."""

    def __init__(self, indexer: PositionIndexer | None = None, array: np.ndarray | None = None):
        self.indexer = indexer or default_indexer()
        size = self.indexer.num_positions
        if array is None:
            array = np.zeros(size, dtype=np.uint16)
        elif array.shape != (size,):
            raise TablebaseLoadError(f"Packed tablebase has shape {array.shape}, expected ({size},)")
        self._array = array.astype(np.uint16, copy=True)
        self._array.flags.writeable = True

    @classmethod
    def from_entries(
        cls,
        entries: Mapping[CanonicalKey, TablebaseEntry],
        indexer: PositionIndexer | None = None,
    ) -> PackedTablebase:
        table = cls(indexer)
        skipped = 0
        for key, entry in entries.items():
            if not table.set(key, entry):
                skipped += 1
        if skipped:
            logger.warning("Ignored %d tablebase keys that are not canonical positions", skipped)
        return table

    @classmethod
    def from_bytes(cls, data: bytes, indexer: PositionIndexer | None = None) -> PackedTablebase:
        try:
            array = np.load(io.BytesIO(data), allow_pickle=False)
        except ValueError as exc:
            raise TablebaseLoadError(f"Unreadable packed tablebase: {exc}") from exc
        if array.dtype != np.uint16:
            raise TablebaseLoadError(f"Packed tablebase must be uint16, got {array.dtype}")
        return cls(indexer, array)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        np.save(buffer, self._array, allow_pickle=False)
        return buffer.getvalue()

    def freeze(self) -> PackedTablebase:
        """Make the backing array read-only; the store never mutates after load."""
        self._array.flags.writeable = False
        return self

    def set(self, key: CanonicalKey, entry: TablebaseEntry) -> bool:
        index = self.indexer.key_to_index(key)
        if index is None:
            return False
        self._array[index] = pack_entry(entry)
        return True

    def get(self, key: CanonicalKey) -> TablebaseEntry | None:
        index = self.indexer.key_to_index(key)
        if index is None:
            return None
        return unpack_entry(int(self._array[index]))

    def entries(self) -> dict[CanonicalKey, TablebaseEntry]:
        result = {}
        for index in np.nonzero(self._array & VALUE_MASK)[0]:
            key = self.indexer.index_to_key(int(index))
            entry = unpack_entry(int(self._array[index]))
            if key is not None and entry is not None:
                result[key] = entry
        return result

    def __len__(self) -> int:
        """Number of solved slots."""
        return int(np.count_nonzero(self._array & VALUE_MASK))

    def get_stats(self) -> dict[str, int]:
        values = self._array & VALUE_MASK
        return {
            "win": int(np.sum(values == StoredValue.WIN)),
            "loss": int(np.sum(values == StoredValue.LOSS)),
            "draw": int(np.sum(values == StoredValue.DRAW)),
            "unknown": int(np.sum(values == StoredValue.UNKNOWN)),
            "total": int(values.size),
            "max_distance": int((self._array >> DISTANCE_SHIFT).max()) if values.size else 0,
        }


def parse_artifact(data: bytes | Mapping[str, object]) -> dict[CanonicalKey, TablebaseEntry]:
    """Decode a JSON artifact (bytes or already-parsed mapping) into entries.

    Raises:
        TablebaseLoadError: On malformed JSON or entries.
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = json.loads(bytes(data).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TablebaseLoadError(f"Tablebase is not valid JSON: {exc}") from exc
    if not isinstance(data, Mapping):
        raise TablebaseLoadError("Tablebase artifact must be a JSON object")

    entries: dict[CanonicalKey, TablebaseEntry] = {}
    for key, value in data.items():
        if isinstance(value, TablebaseEntry):
            entries[str(key)] = value
        else:
            entries[str(key)] = TablebaseEntry.from_dict(value)  # type: ignore[arg-type]
    return entries


def dump_artifact(entries: Mapping[CanonicalKey, TablebaseEntry]) -> str:
    return json.dumps({key: entry.to_dict() for key, entry in sorted(entries.items())}, indent=2)


def _is_url(source: object) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


def _build_entries() -> dict[CanonicalKey, TablebaseEntry]:
    from .retrograde import RetrogradeTablebase

    tablebase = RetrogradeTablebase()
    tablebase.generate()
    return tablebase.entries()


class TablebaseStore:
    """Loads the tablebase once and answers synchronous point lookups.

    Concurrent ``load`` calls made while a load is in flight all await the
    same underlying task. A failed load is logged, leaves the store empty and
    may be retried by a later call.
    """

    def __init__(
        self,
        default_source: TablebaseSource | None = None,
        fetch_timeout: float = 30.0,
    ) -> None:
        self.default_source = default_source
        self.fetch_timeout = fetch_timeout
        self._table: PackedTablebase | None = None
        self._pending: asyncio.Future[None] | None = None
        self._listeners: list[LoadedListener] = []
        self._notified = False
        self.load_attempts = 0

    @classmethod
    def from_entries(cls, entries: Mapping[CanonicalKey, TablebaseEntry]) -> TablebaseStore:
        """Store that is loaded synchronously from in-memory entries."""
        store = cls()
        store._install(PackedTablebase.from_entries(entries))
        return store

    @property
    def is_loaded(self) -> bool:
        return self._table is not None

    async def load(self, source: TablebaseSource | None = None) -> bool:
        """Load the table from ``source`` (or the default source).

        With neither, the table is built in-process by retrograde analysis.

        Returns:
            Whether the store holds a table afterwards
        """
        if self._table is not None:
            return True
        if self._pending is None:
            chosen = source if source is not None else self.default_source
            self._pending = asyncio.ensure_future(self._load(chosen))
        await asyncio.shield(self._pending)
        return self._table is not None

    async def _load(self, source: TablebaseSource | None) -> None:
        self.load_attempts += 1
        try:
            table = await self._read(source)
        except (TablebaseLoadError, ValueError, OSError, aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("Error loading tablebase from %s: %s", _describe(source), exc)
            return
        finally:
            self._pending = None
        self._install(table)
        logger.info("Tablebase loaded from %s (%d positions)", _describe(source), len(table))

    async def _read(self, source: TablebaseSource | None) -> PackedTablebase:
        if source is None:
            entries = await asyncio.to_thread(_build_entries)
            return PackedTablebase.from_entries(entries)
        if isinstance(source, Mapping):
            return PackedTablebase.from_entries(parse_artifact(source))
        if _is_url(source):
            data = await self._fetch(str(source))
        elif isinstance(source, (bytes, bytearray)):
            data = bytes(source)
        else:
            data = await asyncio.to_thread(Path(source).read_bytes)
        return self._decode(data)

    async def _fetch(self, url: str) -> bytes:
        timeout = aiohttp.ClientTimeout(total=self.fetch_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as resp:
                if resp.status != 200:
                    raise TablebaseLoadError(f"Failed to load tablebase ({resp.status})")
                return await resp.read()

    @staticmethod
    def _decode(data: bytes) -> PackedTablebase:
        stripped = data.lstrip()
        if stripped.startswith(NPY_MAGIC):
            return PackedTablebase.from_bytes(stripped)
        if stripped.startswith(b"{"):
            return PackedTablebase.from_entries(parse_artifact(stripped))
        raise TablebaseLoadError("Unrecognised tablebase format")

    def _install(self, table: PackedTablebase) -> None:
        self._table = table.freeze()
        self._notify_loaded()

    def add_loaded_listener(self, listener: LoadedListener) -> None:
        """Register a one-shot callback; runs immediately if already loaded."""
        if self._notified:
            self._call_listener(listener)
            return
        self._listeners.append(listener)

    def _notify_loaded(self) -> None:
        if self._notified:
            return
        self._notified = True
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            self._call_listener(listener)

    def _call_listener(self, listener: LoadedListener) -> None:
        try:
            listener(self)
        except Exception:
            logger.exception("Tablebase loaded listener %r failed", listener)

    def lookup(self, key: CanonicalKey) -> TablebaseEntry | None:
        """Entry for a canonical key, or ``None`` when absent or not loaded."""
        if self._table is None:
            return None
        return self._table.get(key)

    def lookup_state(self, game_state: state.State, turn: str) -> TablebaseEntry | None:
        return self.lookup(state.canonical_key(game_state, turn))

    def entries(self) -> dict[CanonicalKey, TablebaseEntry]:
        return self._table.entries() if self._table is not None else {}

    def get_stats(self) -> dict[str, object]:
        stats: dict[str, object] = {"loaded": self.is_loaded, "load_attempts": self.load_attempts}
        if self._table is not None:
            stats.update(self._table.get_stats())
        return stats


def _describe(source: TablebaseSource | None) -> str:
    if source is None:
        return "in-process build"
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    if isinstance(source, Mapping):
        return f"<mapping of {len(source)} keys>"
    return str(source)


__all__ = [
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
