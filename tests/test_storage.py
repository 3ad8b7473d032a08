"""Tests for the packed format, artifact parsing and the async tablebase store."""

import asyncio
import json

import numpy as np
import pytest
from aiohttp import test_utils, web

from _01_simulator import rules, state
from _01_simulator.exceptions import TablebaseLoadError
from _02_agents.tablebase.endgame import Outcome, TablebaseEntry
from _02_agents.tablebase.storage import (
    MAX_DISTANCE,
    PackedTablebase,
    TablebaseStore,
    dump_artifact,
    pack_entry,
    parse_artifact,
    unpack_entry,
)


class TestPacking:
    def test_pack_and_unpack(self):
        entry = TablebaseEntry(Outcome.LOSS, 12)
        assert unpack_entry(pack_entry(entry)) == entry

    def test_unknown_slot(self):
        assert unpack_entry(0) is None

    def test_distance_must_fit(self):
        with pytest.raises(ValueError):
            pack_entry(TablebaseEntry(Outcome.WIN, MAX_DISTANCE + 1))

    def test_packed_table_keeps_entries(self, entries):
        table = PackedTablebase.from_entries(entries)
        assert len(table) == 450
        assert table.get("1,4|0,1|player") == TablebaseEntry(Outcome.WIN, 1)
        assert table.get("not-a-key") is None
        stats = table.get_stats()
        assert stats["total"] == 450
        assert stats["unknown"] == 0

    def test_partial_table_leaves_unknown_slots(self):
        table = PackedTablebase.from_entries({"1,1|1,1|player": TablebaseEntry(Outcome.DRAW, 0)})
        assert len(table) == 1
        assert table.get("1,1|1,1|ai") is None

    def test_wrong_shape_rejected(self):
        with pytest.raises(TablebaseLoadError):
            PackedTablebase(array=np.zeros(3, dtype=np.uint16))

    def test_wrong_dtype_rejected(self):
        buffer = PackedTablebase().to_bytes().replace(b"<u2", b"<f2")
        with pytest.raises(TablebaseLoadError):
            PackedTablebase.from_bytes(buffer)


class TestParseArtifact:
    def test_json_bytes(self):
        data = json.dumps({"1,4|0,1|player": {"outcome": "WIN", "distance": 1}}).encode()
        assert parse_artifact(data) == {"1,4|0,1|player": TablebaseEntry(Outcome.WIN, 1)}

    def test_legacy_draw_distance(self):
        entries = parse_artifact({"1,1|1,1|player": {"outcome": "DRAW", "distance": -1}})
        assert entries["1,1|1,1|player"] == TablebaseEntry(Outcome.DRAW, 0)

    def test_missing_distance_defaults_to_zero(self):
        entries = parse_artifact({"1,1|1,1|player": {"outcome": "DRAW"}})
        assert entries["1,1|1,1|player"].distance == 0

    @pytest.mark.parametrize(
        "data",
        [
            b"not json",
            b"[1, 2]",
            {"1,1|1,1|player": {"outcome": "MAYBE", "distance": 0}},
            {"1,1|1,1|player": {"outcome": "WIN", "distance": -3}},
            {"1,1|1,1|player": {"outcome": "WIN", "distance": "far"}},
            {"1,1|1,1|player": "WIN"},
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(TablebaseLoadError):
            parse_artifact(data)

    def test_dump_is_sorted_json(self, entries):
        text = dump_artifact(entries)
        assert parse_artifact(text.encode()) == entries


class TestTablebaseStore:
    def test_lookup_before_load_is_none(self):
        store = TablebaseStore()
        assert not store.is_loaded
        assert store.lookup("1,1|1,1|player") is None
        assert store.entries() == {}
        assert store.get_stats() == {"loaded": False, "load_attempts": 0}

    def test_load_from_mapping(self, entries):
        artifact = {key: entry.to_dict() for key, entry in entries.items()}
        store = TablebaseStore(default_source=artifact)
        assert asyncio.run(store.load())
        assert store.lookup("1,4|0,1|player") == TablebaseEntry(Outcome.WIN, 1)
        assert store.lookup_state(state.State((0, 1), (4, 1)), rules.AI) == TablebaseEntry(Outcome.WIN, 1)

    def test_load_json_and_npy_files(self, tablebase, entries, tmp_path):
        json_path = tablebase.save(tmp_path / "tb.json")
        npy_path = tablebase.save(tmp_path / "tb.npy", packed=True)
        for path in (json_path, str(npy_path)):
            store = TablebaseStore()
            assert asyncio.run(store.load(path))
            assert store.entries() == entries

    def test_load_raw_bytes_with_leading_whitespace(self, entries):
        data = b"\n  " + dump_artifact(entries).encode()
        store = TablebaseStore()
        assert asyncio.run(store.load(data))
        assert len(store.entries()) == 450

    def test_unknown_format_fails(self):
        store = TablebaseStore()
        assert not asyncio.run(store.load(b"GARBAGE"))
        assert not store.is_loaded

    def test_lookup_is_pure(self, store):
        before = store.get_stats()
        first = store.lookup("1,1|1,1|player")
        second = store.lookup("1,1|1,1|player")
        assert first == second
        assert store.get_stats() == before

    def test_concurrent_loads_share_one_read(self, entries, monkeypatch):
        store = TablebaseStore()
        calls = []

        async def fake_read(source):
            calls.append(source)
            await asyncio.sleep(0.01)
            return PackedTablebase.from_entries(entries)

        monkeypatch.setattr(store, "_read", fake_read)

        async def scenario():
            return await asyncio.gather(store.load("a"), store.load("b"), store.load("c"))

        assert asyncio.run(scenario()) == [True, True, True]
        assert calls == ["a"]
        assert store.load_attempts == 1
        assert asyncio.run(store.load("d"))
        assert calls == ["a"]

    def test_failed_load_can_be_retried(self, tablebase, tmp_path):
        store = TablebaseStore()
        assert not asyncio.run(store.load(tmp_path / "missing.json"))
        assert store.load_attempts == 1
        assert store.lookup("1,1|1,1|player") is None

        good = tablebase.save(tmp_path / "present.json")
        assert asyncio.run(store.load(good))
        assert store.load_attempts == 2
        assert store.is_loaded

    def test_build_in_process_without_source(self, entries):
        store = TablebaseStore()
        assert asyncio.run(store.load())
        assert store.entries() == entries


class TestLoadedListeners:
    def test_listener_runs_once(self, entries):
        store = TablebaseStore(default_source={k: v.to_dict() for k, v in entries.items()})
        seen = []
        store.add_loaded_listener(seen.append)
        assert seen == []

        asyncio.run(store.load())
        asyncio.run(store.load())
        assert seen == [store]

    def test_late_listener_runs_immediately(self, store):
        seen = []
        store.add_loaded_listener(seen.append)
        assert seen == [store]

    def test_failing_listener_does_not_break_load(self, entries):
        store = TablebaseStore(default_source={k: v.to_dict() for k, v in entries.items()})
        seen = []

        def broken(_):
            raise RuntimeError("listener failed")

        store.add_loaded_listener(broken)
        store.add_loaded_listener(seen.append)
        assert asyncio.run(store.load())
        assert seen == [store]


class TestHttpSource:
    def test_fetch_from_url(self, entries):
        payload = dump_artifact(entries).encode()

        async def artifact(request):
            return web.Response(body=payload, content_type="application/json")

        async def missing(request):
            return web.Response(status=404)

        async def scenario():
            app = web.Application()
            app.router.add_get("/tablebase.json", artifact)
            app.router.add_get("/missing.json", missing)
            async with test_utils.TestServer(app) as server:
                store = TablebaseStore()
                failed = await store.load(str(server.make_url("/missing.json")))
                loaded = await store.load(str(server.make_url("/tablebase.json")))
                return store, failed, loaded

        store, failed, loaded = asyncio.run(scenario())
        assert not failed
        assert loaded
        assert store.load_attempts == 2
        assert store.entries() == entries
