"""
Tests for the layered auto-layout.
"""

from mindmap.graph import MapNode, MapState
from mindmap.layout import auto_layout, layer_ids


def _positions(state):
    return {nid: (n.x, n.y) for nid, n in state.nodes.items()}


class TestAutoLayout:
    def test_layers_follow_breadth_first_order(self, sample_state):
        assert layer_ids(sample_state) == [["r"], ["a", "b"], ["c"]]

    def test_columns_and_rows(self, sample_state):
        laid = auto_layout(sample_state)
        assert _positions(laid) == {
            "r": (0.0, 0.0),
            "a": (220.0, -45.0),
            "b": (220.0, 45.0),
            "c": (440.0, 0.0),
        }

    def test_layers_are_centered(self):
        nodes = {"r": MapNode("r", "Root", 50, 50)}
        for i in range(3):
            nodes[f"n{i}"] = MapNode(f"n{i}", str(i), parent_id="r")
        laid = auto_layout(MapState(nodes=nodes, root_id="r"))
        ys = [laid.nodes[f"n{i}"].y for i in range(3)]
        assert ys == [-90.0, 0.0, 90.0]
        assert sum(ys) == 0

    def test_idempotent(self, sample_state):
        once = auto_layout(sample_state)
        assert auto_layout(once) == once

    def test_custom_gaps(self, sample_state):
        laid = auto_layout(sample_state, level_gap=100, node_gap=10)
        assert (laid.nodes["c"].x, laid.nodes["a"].y) == (200.0, -5.0)

    def test_unreachable_nodes_keep_position(self, sample_state):
        floating = MapNode("f", "Floating", 777, -33)
        laid = auto_layout(sample_state.with_node(floating))
        assert (laid.nodes["f"].x, laid.nodes["f"].y) == (777, -33)

    def test_missing_root_is_a_noop(self):
        state = MapState(nodes={"a": MapNode("a", "A", 5, 5)}, root_id="ghost")
        assert auto_layout(state) is state
        assert layer_ids(state) == []

    def test_other_fields_untouched(self, sample_state):
        laid = auto_layout(sample_state)
        assert laid.links == sample_state.links
        assert laid.nodes["r"].color == "#fde68a"
