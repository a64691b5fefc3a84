"""
Tests for the interaction state machine.

Geometry: default viewport (pan 120,120, zoom 1) so a node at world (x, y)
is drawn at screen (x + 120, y + 120). With the fake measurer every node in
the sample map is a 120x40 box.
"""

import pytest

from mindmap.edit import (
    Connecting,
    DraggingNode,
    Editing,
    Idle,
    InteractionController,
    Panning,
    StyleUpdate,
)
from mindmap.graph import MapNode, MapState
from mindmap.store import MapStore
from mindmap.transform import Viewport


@pytest.fixture
def store(sample_state):
    return MapStore(sample_state)


@pytest.fixture
def controller(store, sizer):
    return InteractionController(store, Viewport(), sizer)


def screen(state, node_id, dx=0, dy=0):
    node = state.nodes[node_id]
    return node.x + 120 + dx, node.y + 120 + dy


class TestInitialState:
    def test_idle_with_root_selected(self, controller):
        assert isinstance(controller.mode, Idle)
        assert controller.is_idle
        assert controller.selected == "r"

    def test_select_unknown_node_is_ignored(self, controller):
        controller.select("ghost")
        assert controller.selected == "r"

    def test_on_change_called(self, controller):
        seen = []
        controller.set_on_change(lambda c: seen.append(c.selected))
        controller.select("b")
        assert seen == ["b"]


class TestDragAndPan:
    def test_drag_moves_node(self, controller, store):
        sx, sy = screen(store.get(), "a")
        controller.pointer_down(sx, sy)
        assert controller.mode == DraggingNode("a", 0, 0)
        assert controller.selected == "a"

        controller.pointer_move(sx + 10, sy + 10)
        assert (store.get().nodes["a"].x, store.get().nodes["a"].y) == (230, -35)

        controller.pointer_up()
        assert controller.is_idle

    def test_drag_keeps_grab_offset(self, controller, store):
        sx, sy = screen(store.get(), "b", dx=20, dy=5)
        controller.pointer_down(sx, sy)
        controller.pointer_move(sx + 100, sy)
        assert store.get().nodes["b"].x == 320

    def test_background_pans(self, controller):
        controller.pointer_down(800, 800)
        assert isinstance(controller.mode, Panning)
        assert controller.selected is None

        controller.pointer_move(810, 790)
        assert (controller.viewport.pan_x, controller.viewport.pan_y) == (130, 110)
        controller.pointer_up()
        assert controller.is_idle

    def test_pan_does_not_touch_store(self, controller, store):
        notified = []
        store.subscribe(lambda: notified.append(1))
        controller.pointer_down(800, 800)
        controller.pointer_move(900, 900)
        assert notified == []

    def test_wheel_zooms(self, controller):
        controller.wheel(400, 300, -120)
        assert controller.viewport.zoom == pytest.approx(1.05)
        controller.wheel(400, 300, 120)
        assert controller.viewport.zoom == pytest.approx(1.05 * 0.95)
        controller.wheel(400, 300, 0)
        assert controller.viewport.zoom == pytest.approx(1.05 * 0.95)


class TestBadges:
    def test_collapse_badge(self, controller, store):
        # collapse badge sits left of the root box
        controller.pointer_down(*screen(store.get(), "r", dx=-76))
        assert store.get().nodes["r"].collapsed
        assert controller.is_idle

    def test_reparent_badge(self, controller, store):
        controller.click_node("c")
        # reparent badge sits right of node b
        controller.pointer_down(*screen(store.get(), "b", dx=76))
        assert store.get().nodes["c"].parent_id == "b"

    def test_reparent_into_own_subtree_is_ignored(self, controller, store):
        before = store.get()
        controller.click_node("a")
        controller.reparent_badge("c")
        assert store.get() is before

    def test_hit_test(self, controller, store):
        assert controller.hit_test(*screen(store.get(), "c")) == ("c", None)
        assert controller.hit_test(*screen(store.get(), "a", dx=76)) == ("a", "reparent")
        assert controller.hit_test(2000, 2000) == (None, None)

    def test_hidden_nodes_are_not_hit(self, controller, store):
        controller.collapse_badge("a")
        assert controller.hit_test(*screen(store.get(), "c")) == (None, None)


class TestLinking:
    def test_link_by_click(self, controller, store):
        controller.click_node("a")
        controller.start_link()
        assert controller.mode == Connecting("a")

        controller.click_node("a")
        assert controller.mode == Connecting("a")

        controller.click_node("b")
        assert controller.is_idle
        assert ("a", "b") in {(l.source, l.target) for l in store.get().links}

    def test_link_by_pointer(self, controller, store):
        controller.click_node("a")
        controller.start_link()
        controller.pointer_down(*screen(store.get(), "b"))
        assert ("a", "b") in {(l.source, l.target) for l in store.get().links}

    def test_connect_badge(self, controller, store):
        controller.click_node("a")
        controller.start_link()
        controller.pointer_down(*screen(store.get(), "c", dy=-36))
        assert ("a", "c") in {(l.source, l.target) for l in store.get().links}

    def test_escape_cancels(self, controller, store):
        before = store.get()
        controller.start_link()
        controller.key_down("Escape")
        assert controller.is_idle
        assert store.get() is before

    def test_duplicate_link_leaves_store_alone(self, controller, store):
        notified = []
        store.subscribe(lambda: notified.append(1))
        controller.click_node("c")
        controller.start_link()
        controller.click_node("b")
        assert notified == []
        assert controller.is_idle


class TestTextEditing:
    def test_edit_and_commit(self, controller, store):
        controller.double_click_node("a")
        assert controller.mode == Editing("a", "A")
        controller.update_draft("Idea")
        controller.key_down("Enter")
        assert controller.is_idle
        assert store.get().nodes["a"].text == "Idea"

    def test_escape_discards_draft(self, controller, store):
        controller.double_click_node("a")
        controller.update_draft("Idea")
        controller.key_down("Escape")
        assert controller.is_idle
        assert store.get().nodes["a"].text == "A"

    def test_keys_go_to_editor(self, controller, store):
        controller.double_click_node("a")
        controller.key_down("Delete")
        assert "a" in store.get().nodes
        assert isinstance(controller.mode, Editing)

    def test_pressing_elsewhere_commits(self, controller, store):
        controller.double_click_node("a")
        controller.update_draft("Idea")
        controller.pointer_down(800, 800)
        assert store.get().nodes["a"].text == "Idea"
        assert isinstance(controller.mode, Panning)

    def test_enter_starts_editing_selection(self, controller):
        controller.click_node("b")
        controller.key_down("Enter")
        assert controller.mode == Editing("b", "B")


class TestCommands:
    def test_ctrl_a_adds_floating_node(self, controller, store):
        controller.key_down("a", ctrl=True)
        mode = controller.mode
        assert isinstance(mode, Editing)
        assert store.get().nodes[mode.node_id].parent_id is None

    def test_add_child_of_selection(self, controller, store):
        controller.click_node("b")
        node_id = controller.add_child()
        assert store.get().nodes[node_id].parent_id == "b"
        assert controller.mode == Editing(node_id, "Child")

    def test_delete_selected(self, controller, store):
        controller.click_node("a")
        controller.key_down("Delete")
        assert set(store.get().nodes) == {"r", "b"}
        assert controller.selected is None

    def test_delete_root_is_refused(self, controller, store):
        before = store.get()
        controller.key_down("Backspace")
        assert store.get() is before
        assert controller.selected == "r"

    def test_keys_ignored_while_dragging(self, controller, store):
        controller.pointer_down(*screen(store.get(), "a"))
        controller.key_down("Delete")
        assert "a" in store.get().nodes

    def test_relayout(self, controller, store):
        controller.pointer_down(*screen(store.get(), "a"))
        controller.pointer_move(0, 0)
        controller.pointer_up()
        controller.relayout()
        assert (store.get().nodes["a"].x, store.get().nodes["a"].y) == (220, -45)

    def test_set_style(self, controller, store):
        controller.click_node("b")
        controller.set_style(StyleUpdate(color="#abcdef"))
        assert store.get().nodes["b"].color == "#abcdef"
        with pytest.raises(ValueError):
            controller.set_style(StyleUpdate(color="blue"))

    def test_toggle_collapse(self, controller, store):
        controller.toggle_collapse()
        assert store.get().nodes["r"].collapsed

    def test_load_resets_interaction(self, controller, store):
        controller.start_link()
        fresh = MapState(nodes={"x": MapNode("x", "X")}, root_id="x")
        controller.load(fresh)
        assert store.get() is fresh
        assert controller.is_idle
        assert controller.selected == "x"
