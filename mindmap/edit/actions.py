"""
Edit actions for the mind map.

Every function takes a ``MapState`` and returns the next one. None of them
raise on structural violations (cycles, deleting the root, self-links); they
hand back the input state unchanged instead, so callers can detect a no-op
with an identity check.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Union

from mindmap.graph import (
    EDGE_KIND_LINK,
    MapEdge,
    MapNode,
    MapState,
    NodeShape,
    is_hex_color,
    subtree_ids,
    uid,
    would_create_cycle,
)
from mindmap.layout import DEFAULT_LEVEL_GAP, DEFAULT_NODE_GAP, auto_layout
from mindmap.edit.constants import (
    CHILD_OFFSET_X,
    NEW_CHILD_COLOR,
    NEW_CHILD_TEXT,
    NEW_NODE_COLOR,
    NEW_NODE_TEXT,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StyleUpdate:
    """
    Partial style change for one node. Fields left as None are untouched.

    ``validate`` normalizes the shape to ``NodeShape`` and rejects anything
    that is not a ``#rrggbb`` color or a known shape.
    """
    color: Optional[str] = None
    shape: Optional[Union[NodeShape, str]] = None

    def validate(self) -> "StyleUpdate":
        if self.color is not None and not is_hex_color(self.color):
            raise ValueError(f"Invalid color: {self.color!r}")
        shape = self.shape
        if shape is not None and not isinstance(shape, NodeShape):
            try:
                shape = NodeShape(shape)
            except ValueError:
                raise ValueError(f"Unknown shape: {shape!r}") from None
        return StyleUpdate(color=self.color, shape=shape)

    @property
    def is_empty(self) -> bool:
        return self.color is None and self.shape is None


def add_node(state: MapState, node_id: Optional[str] = None, text: str = NEW_NODE_TEXT,
             x: float = 0.0, y: float = 0.0) -> MapState:
    """Add a free-standing node (no parent)."""
    node_id = node_id or uid()
    if node_id in state.nodes:
        return state
    node = MapNode(id=node_id, text=text, x=x, y=y,
                   color=NEW_NODE_COLOR, shape=NodeShape.ROUNDED)
    return state.with_node(node)


def add_child(state: MapState, parent_id: Optional[str], node_id: Optional[str] = None,
              text: str = NEW_CHILD_TEXT) -> MapState:
    """Add a child under ``parent_id`` (the root when None), placed to its right."""
    parent = state.nodes.get(parent_id or state.root_id)
    node_id = node_id or uid()
    if parent is None or node_id in state.nodes:
        logger.debug(f"add_child: parent {parent_id} missing, nothing added")
        return state
    node = MapNode(id=node_id, text=text, x=parent.x + CHILD_OFFSET_X, y=parent.y,
                   parent_id=parent.id, color=NEW_CHILD_COLOR, shape=NodeShape.ROUNDED)
    return state.with_node(node)


def delete_subtree(state: MapState, node_id: str) -> MapState:
    """Remove ``node_id``, its descendants and every link touching them."""
    if node_id not in state.nodes or node_id == state.root_id:
        logger.debug(f"delete_subtree: refusing to delete {node_id}")
        return state
    doomed = subtree_ids(state, node_id)
    if state.root_id in doomed:
        # only reachable with a corrupt parent cycle through the root
        logger.debug(f"delete_subtree: subtree of {node_id} contains the root")
        return state
    nodes = {nid: n for nid, n in state.nodes.items() if nid not in doomed}
    links = [l for l in state.links if l.source not in doomed and l.target not in doomed]
    return MapState(nodes=nodes, root_id=state.root_id, links=tuple(links))


def reparent(state: MapState, child_id: str, parent_id: str) -> MapState:
    """Move ``child_id`` under ``parent_id`` unless that would form a cycle."""
    child = state.nodes.get(child_id)
    if child is None or parent_id not in state.nodes:
        return state
    if child_id == state.root_id or child.parent_id == parent_id:
        return state
    if child_id == parent_id or would_create_cycle(state, child_id, parent_id):
        logger.debug(f"reparent: {child_id} -> {parent_id} would create a cycle")
        return state
    return state.with_node(replace(child, parent_id=parent_id))


def connect(state: MapState, source_id: str, target_id: str,
            link_id: Optional[str] = None) -> MapState:
    """Add a cross-link. Self-links and duplicates of an existing pair are ignored."""
    if source_id == target_id:
        return state
    if source_id not in state.nodes or target_id not in state.nodes:
        return state
    if any(l.source == source_id and l.target == target_id for l in state.links):
        logger.debug(f"connect: link {source_id} -> {target_id} already exists")
        return state
    edge = MapEdge(id=link_id or f"l-{uid()}", source=source_id,
                   target=target_id, kind=EDGE_KIND_LINK)
    return state.with_links(state.links + (edge,))


def commit_text(state: MapState, node_id: str, text: str) -> MapState:
    node = state.nodes.get(node_id)
    if node is None or node.text == text:
        return state
    return state.with_node(replace(node, text=text))


def apply_style(state: MapState, node_id: str, update: StyleUpdate) -> MapState:
    """Merge a validated ``StyleUpdate`` into one node. Raises ``ValueError`` if invalid."""
    update = update.validate()
    node = state.nodes.get(node_id)
    if node is None or update.is_empty:
        return state
    changes = {}
    if update.color is not None and update.color != node.color:
        changes["color"] = update.color
    if update.shape is not None and update.shape != node.shape:
        changes["shape"] = update.shape
    if not changes:
        return state
    return state.with_node(replace(node, **changes))


def toggle_collapsed(state: MapState, node_id: str) -> MapState:
    node = state.nodes.get(node_id)
    if node is None:
        return state
    return state.with_node(replace(node, collapsed=not node.collapsed))


def move_node(state: MapState, node_id: str, x: float, y: float) -> MapState:
    node = state.nodes.get(node_id)
    if node is None:
        return state
    return state.with_node(node.moved_to(x, y))


def relayout(state: MapState, level_gap: float = DEFAULT_LEVEL_GAP,
             node_gap: float = DEFAULT_NODE_GAP) -> MapState:
    return auto_layout(state, level_gap, node_gap)
