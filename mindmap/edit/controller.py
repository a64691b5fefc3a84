"""
Interaction Controller - turns pointer and keyboard events into map edits.

The controller owns the interaction mode (idle, dragging, panning, linking,
editing text) and the current selection. It reads the viewport to convert
pointer coordinates and writes through the store; it never mutates a
``MapState`` in place.

Model changes reach the renderer through the store's subscribers. Changes that
only touch the controller or the viewport (mode, selection, pan, zoom) are
reported through ``on_change``.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from mindmap.graph import MapState, children_of, uid
from mindmap.layout import DEFAULT_LEVEL_GAP, DEFAULT_NODE_GAP
from mindmap.sizing import NodeSizer
from mindmap.store import MapStore
from mindmap.transform import Viewport
from mindmap.view import visible_nodes
from mindmap.edit import actions
from mindmap.edit.actions import StyleUpdate
from mindmap.edit.constants import CANCEL_KEYS, COMMIT_KEYS, DELETE_KEYS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class DraggingNode:
    node_id: str
    grab_dx: float
    grab_dy: float


@dataclass(frozen=True)
class Panning:
    origin_dx: float
    origin_dy: float


@dataclass(frozen=True)
class Connecting:
    source_id: str


@dataclass(frozen=True)
class Editing:
    node_id: str
    draft: str


Mode = Union[Idle, DraggingNode, Panning, Connecting, Editing]

IDLE = Idle()


class InteractionController:
    """State machine mediating between raw UI events and the map store."""

    def __init__(self, store: MapStore, viewport: Viewport,
                 sizer: Optional[NodeSizer] = None,
                 level_gap: float = DEFAULT_LEVEL_GAP,
                 node_gap: float = DEFAULT_NODE_GAP):
        self.store = store
        self.viewport = viewport
        self.sizer = sizer
        self.level_gap = level_gap
        self.node_gap = node_gap
        self._mode: Mode = IDLE
        self._selected: Optional[str] = store.get().root_id
        self._on_change: Optional[Callable[["InteractionController"], None]] = None

    # --- State ---

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def selected(self) -> Optional[str]:
        return self._selected

    @property
    def is_idle(self) -> bool:
        return isinstance(self._mode, Idle)

    def set_on_change(self, callback: Callable[["InteractionController"], None]):
        self._on_change = callback

    def _set_mode(self, mode: Mode) -> None:
        self._mode = mode
        self._notify_change()

    def _notify_change(self):
        if self._on_change:
            self._on_change(self)

    def _commit(self, update: Callable[[MapState], MapState]) -> bool:
        """Apply ``update`` through the store unless it is a no-op."""
        current = self.store.get()
        next_state = update(current)
        if next_state is current:
            return False
        self.store.set(next_state)
        return True

    def select(self, node_id: Optional[str]) -> None:
        if node_id is not None and node_id not in self.store.get().nodes:
            return
        self._selected = node_id
        self._notify_change()

    # --- Hit testing ---

    def hit_test(self, sx: float, sy: float) -> Tuple[Optional[str], Optional[str]]:
        """
        Return (node_id, badge) under a screen point. ``badge`` is one of
        'collapse', 'reparent', 'connect' or None. Later nodes are drawn on top
        and win.
        """
        if self.sizer is None:
            return None, None
        state = self.store.get()
        wx, wy = self.viewport.to_world(sx, sy)
        connecting = self._mode.source_id if isinstance(self._mode, Connecting) else None
        for node in reversed(visible_nodes(state)):
            box = self.sizer.size_for(node)
            dx, dy = wx - node.x, wy - node.y
            badges = []
            if children_of(state, node.id):
                badges.append("collapse")
            if self._selected and self._selected != node.id:
                badges.append("reparent")
            if connecting and connecting != node.id:
                badges.append("connect")
            badge = box.badge_at(dx, dy, badges)
            if badge:
                return node.id, badge
            if box.contains(dx, dy):
                return node.id, None
        return None, None

    def pointer_down(self, sx: float, sy: float) -> None:
        """Dispatch a raw press to the badge, node or background handler."""
        node_id, badge = self.hit_test(sx, sy)
        if badge == "collapse":
            self.collapse_badge(node_id)
        elif badge == "reparent":
            self.reparent_badge(node_id)
        elif badge == "connect":
            self.click_node(node_id)
        elif node_id is not None:
            if isinstance(self._mode, Connecting):
                self.click_node(node_id)
            else:
                self.pointer_down_node(node_id, sx, sy)
        else:
            self.pointer_down_background(sx, sy)

    # --- Pointer events ---

    def pointer_down_node(self, node_id: str, sx: float, sy: float) -> None:
        if isinstance(self._mode, Editing):
            self.commit_edit()
        if not self.is_idle:
            return
        node = self.store.get().nodes.get(node_id)
        if node is None:
            return
        wx, wy = self.viewport.to_world(sx, sy)
        self._selected = node_id
        self._set_mode(DraggingNode(node_id, node.x - wx, node.y - wy))

    def pointer_down_background(self, sx: float, sy: float) -> None:
        if isinstance(self._mode, Editing):
            self.commit_edit()
        if not self.is_idle:
            return
        self._selected = None
        self._set_mode(Panning(self.viewport.pan_x - sx, self.viewport.pan_y - sy))

    def pointer_move(self, sx: float, sy: float) -> None:
        mode = self._mode
        if isinstance(mode, DraggingNode):
            wx, wy = self.viewport.to_world(sx, sy)
            self._commit(lambda s: actions.move_node(
                s, mode.node_id, wx + mode.grab_dx, wy + mode.grab_dy))
        elif isinstance(mode, Panning):
            self.viewport.pan_to(sx + mode.origin_dx, sy + mode.origin_dy)
            self._notify_change()

    def pointer_up(self) -> None:
        """Release ends a drag or pan wherever it happens."""
        if isinstance(self._mode, (DraggingNode, Panning)):
            self._set_mode(IDLE)

    def wheel(self, sx: float, sy: float, delta_y: float) -> None:
        if delta_y == 0:
            return
        self.viewport.zoom_at(sx, sy, zoom_in=delta_y < 0)
        self._notify_change()

    def click_node(self, node_id: str) -> None:
        """Completes a pending link, otherwise selects the node."""
        mode = self._mode
        if isinstance(mode, Connecting):
            if node_id == mode.source_id:
                return
            self._commit(lambda s: actions.connect(s, mode.source_id, node_id))
            self._set_mode(IDLE)
        elif self.is_idle:
            self.select(node_id)

    def double_click_node(self, node_id: str) -> None:
        node = self.store.get().nodes.get(node_id)
        if node is None:
            return
        if isinstance(self._mode, Editing) and self._mode.node_id != node_id:
            self.commit_edit()
        self._selected = node_id
        self._set_mode(Editing(node_id, node.text))

    # --- Keyboard ---

    def key_down(self, key: str, ctrl: bool = False) -> None:
        mode = self._mode
        if isinstance(mode, Editing):
            if key in COMMIT_KEYS:
                self.commit_edit()
            elif key in CANCEL_KEYS:
                self.cancel_edit()
            return
        if key in CANCEL_KEYS:
            self.cancel_link()
        elif not self.is_idle:
            return
        elif ctrl and key.lower() == "a":
            self.add_node()
        elif key in DELETE_KEYS:
            self.delete_selected()
        elif key in COMMIT_KEYS and self._selected:
            self.double_click_node(self._selected)

    # --- Text editing ---

    def update_draft(self, text: str) -> None:
        if isinstance(self._mode, Editing):
            self._mode = Editing(self._mode.node_id, text)

    def commit_edit(self) -> None:
        mode = self._mode
        if not isinstance(mode, Editing):
            return
        self._commit(lambda s: actions.commit_text(s, mode.node_id, mode.draft))
        self._set_mode(IDLE)

    def cancel_edit(self) -> None:
        if isinstance(self._mode, Editing):
            self._set_mode(IDLE)

    # --- Commands ---

    def add_node(self) -> str:
        if isinstance(self._mode, Editing):
            self.commit_edit()
        node_id = uid()
        self._commit(lambda s: actions.add_node(s, node_id))
        self._mode = IDLE
        self.double_click_node(node_id)
        return node_id

    def add_child(self) -> Optional[str]:
        if isinstance(self._mode, Editing):
            self.commit_edit()
        node_id = uid()
        parent_id = self._selected or self.store.get().root_id
        if not self._commit(lambda s: actions.add_child(s, parent_id, node_id)):
            return None
        self._mode = IDLE
        self.double_click_node(node_id)
        return node_id

    def delete_selected(self) -> None:
        if not self.is_idle or not self._selected:
            return
        if self._commit(lambda s: actions.delete_subtree(s, self._selected)):
            self._selected = None
            self._notify_change()

    def start_link(self) -> None:
        if self.is_idle and self._selected:
            self._set_mode(Connecting(self._selected))

    def cancel_link(self) -> None:
        if isinstance(self._mode, Connecting):
            self._set_mode(IDLE)

    def reparent_badge(self, target_id: str) -> None:
        """Make ``target_id`` the parent of the current selection."""
        if not self.is_idle or not self._selected:
            return
        child_id = self._selected
        self._commit(lambda s: actions.reparent(s, child_id, target_id))

    def collapse_badge(self, node_id: str) -> None:
        self._commit(lambda s: actions.toggle_collapsed(s, node_id))

    def toggle_collapse(self) -> None:
        if self._selected:
            self.collapse_badge(self._selected)

    def relayout(self) -> None:
        if self.is_idle:
            self._commit(lambda s: actions.relayout(s, self.level_gap, self.node_gap))

    def set_style(self, update: StyleUpdate) -> None:
        """Raises ``ValueError`` for malformed colors or shapes."""
        update = update.validate()
        if not self._selected:
            return
        node_id = self._selected
        self._commit(lambda s: actions.apply_style(s, node_id, update))

    def load(self, state: MapState) -> None:
        """Replace the whole map (document switch or import)."""
        self._mode = IDLE
        self._selected = state.root_id
        self.store.set(state)
        self._notify_change()
