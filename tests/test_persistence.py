"""
Tests for saving/restoring the live map.
"""

import json

import pytest

from mindmap.graph import MapNode
from mindmap.persistence import (
    FORMAT_VERSION,
    STORAGE_KEY,
    decode_state,
    demo_state,
    encode_state,
    load_state,
    make_persister,
    save_state,
)
from mindmap.storage import MemoryStore
from mindmap.store import MapStore


class BrokenStore(MemoryStore):
    def put(self, key, value):
        raise OSError("disk full")

    def get(self, key):
        raise OSError("unreadable")


class TestDemoMap:
    def test_shape(self):
        state = demo_state()
        root = state.nodes[state.root_id]
        assert root.text == "Root idea"
        assert root.color == "#fde68a"
        children = [n for n in state.nodes.values() if n.parent_id == root.id]
        assert [n.text for n in children] == ["First branch", "Second branch", "Third branch"]
        assert [n.color for n in children] == ["#bfdbfe", "#bbf7d0", "#fecaca"]

    def test_is_laid_out(self):
        state = demo_state()
        ys = sorted(n.y for n in state.nodes.values() if n.parent_id)
        assert ys == [-90.0, 0.0, 90.0]


class TestEncoding:
    def test_envelope(self, sample_state):
        payload = json.loads(encode_state(sample_state))
        assert payload["version"] == FORMAT_VERSION
        assert payload["state"]["rootId"] == "r"
        assert decode_state(encode_state(sample_state)) == sample_state

    def test_wrong_version(self, sample_state):
        raw = json.dumps({"version": 99, "state": {}}).encode()
        with pytest.raises(ValueError):
            decode_state(raw)

    def test_root_must_exist(self, sample_state):
        raw = json.dumps({"version": 1, "state": {"nodes": {}, "rootId": "r"}}).encode()
        with pytest.raises(ValueError):
            decode_state(raw)


class TestLoadSave:
    def test_empty_backend_gives_demo(self):
        state = load_state(MemoryStore())
        assert state.nodes[state.root_id].text == "Root idea"

    def test_round_trip(self, sample_state):
        backend = MemoryStore()
        assert save_state(backend, sample_state)
        assert STORAGE_KEY in backend.keys()
        assert load_state(backend) == sample_state

    def test_positions_kept_unless_relayout(self, sample_state):
        backend = MemoryStore()
        moved = sample_state.with_node(MapNode("a", "A", 999, 999, parent_id="r"))
        save_state(backend, moved)
        assert load_state(backend).nodes["a"].x == 999
        assert load_state(backend, relayout=True).nodes["a"].x == 220

    @pytest.mark.parametrize("raw", [
        b"not json",
        b"\xff\xfe",
        b'{"version": 2}',
        b"[]",
        b'{"version": 1, "state": {"nodes": {"r": {"id": "r", "x": [1]}}, "rootId": "r"}}',
        b'{"version": 1, "state": {"nodes": {"r": {"id": "r", "x": 1e999}}, "rootId": "r"}}',
        b'{"version": 1, "state": {"nodes": {"r": {"id": "r", "x": ' + b"9" * 400 + b'}}, "rootId": "r"}}',
        b'{"version": 1, "state": {"nodes": {"r": {"id": "r"}}, "rootId": "r", "links": 5}}',
    ])
    def test_corrupt_data_gives_demo(self, raw):
        state = load_state(MemoryStore({STORAGE_KEY: raw}))
        assert state.nodes[state.root_id].text == "Root idea"

    def test_failures_are_swallowed(self, sample_state):
        backend = BrokenStore()
        assert save_state(backend, sample_state) is False
        assert load_state(backend).nodes[load_state(backend).root_id].text == "Root idea"

    def test_store_persists_through_persister(self, sample_state, scheduler):
        backend = MemoryStore()
        store = MapStore(sample_state, persist=make_persister(backend), scheduler=scheduler)
        store.set(lambda s: s.with_node(MapNode("n", "New")))
        assert backend.get(STORAGE_KEY) is None
        scheduler.run_pending()
        assert "n" in load_state(backend).nodes

    def test_broken_backend_does_not_break_store(self, sample_state, scheduler):
        store = MapStore(sample_state, persist=make_persister(BrokenStore()), scheduler=scheduler)
        store.set(sample_state)
        scheduler.run_pending()
        assert store.get() is sample_state
