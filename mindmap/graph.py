"""
Graph model for the mind-map engine.

A map is a tree of nodes (linked through ``parent_id``) plus an ordered list of
explicit cross-links. Tree edges are never stored; they are derived from the
parent references on demand.

All helpers in this module are pure queries over a ``MapState`` snapshot and
must tolerate inconsistent data (dangling parents, parent cycles) coming from
imports or hand-edited files.
"""

import math
import random
import re
import string
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

import networkx as nx


class NodeShape(str, Enum):
    ROUNDED = "rounded"
    RECT = "rect"
    ELLIPSE = "ellipse"
    DIAMOND = "diamond"


EDGE_KIND_TREE = "tree"
EDGE_KIND_LINK = "link"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def uid(length: int = 7) -> str:
    """Short random opaque id."""
    return "".join(random.choices(_ID_ALPHABET, k=length))


@dataclass(frozen=True)
class MapNode:
    id: str
    text: str
    x: float = 0.0
    y: float = 0.0
    parent_id: Optional[str] = None
    color: Optional[str] = None
    shape: Optional[NodeShape] = None
    collapsed: bool = False

    def moved_to(self, x: float, y: float) -> "MapNode":
        return replace(self, x=float(x), y=float(y))


@dataclass(frozen=True)
class MapEdge:
    id: str
    source: str
    target: str
    kind: str = EDGE_KIND_LINK


@dataclass(frozen=True)
class MapState:
    """Immutable snapshot of a whole map. Mutations build a new instance."""
    nodes: Dict[str, MapNode]
    root_id: str
    links: Tuple[MapEdge, ...] = field(default_factory=tuple)

    def with_nodes(self, nodes: Dict[str, MapNode]) -> "MapState":
        return replace(self, nodes=nodes)

    def with_node(self, node: MapNode) -> "MapState":
        nodes = dict(self.nodes)
        nodes[node.id] = node
        return replace(self, nodes=nodes)

    def with_links(self, links) -> "MapState":
        return replace(self, links=tuple(links))


# --- Structural queries ---

def children_of(state: MapState, node_id: str) -> List[MapNode]:
    """Direct children of ``node_id`` in node-mapping order."""
    return [n for n in state.nodes.values() if n.parent_id == node_id]


def subtree_ids(state: MapState, node_id: str) -> Set[str]:
    """
    ``node_id`` plus every descendant reachable through ``children_of``.

    Uses an explicit stack and a visited set so that a corrupt parent cycle
    cannot make the walk loop forever.
    """
    seen: Set[str] = set()
    stack = [node_id]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        stack.extend(child.id for child in children_of(state, current))
    return seen


def would_create_cycle(state: MapState, child_id: str, parent_id: str) -> bool:
    """True if making ``parent_id`` the parent of ``child_id`` closes a loop."""
    return parent_id in subtree_ids(state, child_id)


def compute_tree_edges(state: MapState) -> List[MapEdge]:
    """Derive the implicit parent -> child edges. Dangling parents are skipped."""
    edges = []
    for node in state.nodes.values():
        if node.parent_id and node.parent_id in state.nodes:
            edges.append(MapEdge(
                id=f"t-{node.id}",
                source=node.parent_id,
                target=node.id,
                kind=EDGE_KIND_TREE,
            ))
    return edges


def ancestors(state: MapState, node_id: str) -> List[str]:
    """
    Parent chain of ``node_id``, nearest first.

    Stops at a missing parent or after visiting every node once, whichever
    comes first.
    """
    chain: List[str] = []
    node = state.nodes.get(node_id)
    limit = len(state.nodes)
    while node is not None and node.parent_id and len(chain) < limit:
        if node.parent_id in chain or node.parent_id == node_id:
            break
        chain.append(node.parent_id)
        node = state.nodes.get(node.parent_id)
    return chain


def depth_of(state: MapState, node_id: str) -> int:
    return len(ancestors(state, node_id))


def to_digraph(state: MapState) -> nx.DiGraph:
    """
    Build a NetworkX view of the tree relation.

    Nodes are added in mapping order and children in ``children_of`` order so
    that traversals over the graph are deterministic.
    """
    G = nx.DiGraph()
    for node_id in state.nodes:
        G.add_node(node_id)
    for edge in compute_tree_edges(state):
        G.add_edge(edge.source, edge.target)
    return G


# --- Wire format ---

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def is_hex_color(value: Any) -> bool:
    return isinstance(value, str) and bool(HEX_COLOR.match(value))


def _coord(value: Any, name: str) -> float:
    """Finite float from a JSON/YAML scalar. Raises ``ValueError`` otherwise."""
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{name} must be a number, got {type(value).__name__}")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValueError(f"{name} is not a usable number: {e}") from None
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite")
    return number


def node_to_dict(node: MapNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": node.id,
        "text": node.text,
        "x": node.x,
        "y": node.y,
    }
    if node.parent_id is not None:
        data["parentId"] = node.parent_id
    if node.color is not None:
        data["color"] = node.color
    if node.shape is not None:
        data["shape"] = node.shape.value
    if node.collapsed:
        data["collapsed"] = True
    return data


def node_from_dict(node_id: str, data: Dict[str, Any]) -> MapNode:
    """
    Raises ``ValueError`` for unusable coordinates. Colors that are not
    ``#rrggbb``, unknown shapes and non-string parents are dropped.
    """
    shape = data.get("shape")
    try:
        shape = NodeShape(shape) if isinstance(shape, str) and shape else None
    except ValueError:
        shape = None
    color = data.get("color")
    parent_id = data.get("parentId")
    return MapNode(
        id=str(data.get("id") or node_id),
        text=str(data.get("text", "")),
        x=_coord(data.get("x"), "x"),
        y=_coord(data.get("y"), "y"),
        parent_id=parent_id if isinstance(parent_id, str) and parent_id else None,
        color=color if is_hex_color(color) else None,
        shape=shape,
        collapsed=data.get("collapsed") is True,
    )


def state_to_dict(state: MapState) -> Dict[str, Any]:
    """Plain JSON/YAML-ready representation of a map."""
    return {
        "nodes": {nid: node_to_dict(n) for nid, n in state.nodes.items()},
        "links": [
            {"id": e.id, "source": e.source, "target": e.target, "kind": e.kind}
            for e in state.links
        ],
        "rootId": state.root_id,
    }


def state_from_dict(data: Dict[str, Any]) -> MapState:
    """
    Inverse of ``state_to_dict``.

    Raises ``ValueError`` when the mapping lacks a node table or a root id, or
    when any node or the link list has the wrong shape. Individual malformed
    links are skipped; links with missing endpoints are kept and queries treat
    them as absent.
    """
    if not isinstance(data, dict):
        raise ValueError("map data must be an object")
    raw_nodes = data.get("nodes")
    root_id = data.get("rootId")
    if not isinstance(raw_nodes, dict) or not isinstance(root_id, (str, int)) \
            or isinstance(root_id, bool) or root_id == "":
        raise ValueError("map data needs 'nodes' and 'rootId'")

    nodes = {}
    for nid, raw in raw_nodes.items():
        if not isinstance(raw, dict):
            raise ValueError(f"node {nid!r} is not an object")
        try:
            node = node_from_dict(str(nid), raw)
        except ValueError as e:
            raise ValueError(f"node {nid!r}: {e}") from None
        nodes[node.id] = node

    raw_links = data.get("links")
    if raw_links is None:
        raw_links = []
    if not isinstance(raw_links, list):
        raise ValueError("'links' must be a list")

    links = []
    for raw in raw_links:
        if not isinstance(raw, dict) or "source" not in raw or "target" not in raw:
            continue
        kind = raw.get("kind")
        links.append(MapEdge(
            id=str(raw.get("id") or f"l-{uid()}"),
            source=str(raw["source"]),
            target=str(raw["target"]),
            kind=kind if kind in (EDGE_KIND_TREE, EDGE_KIND_LINK) else EDGE_KIND_LINK,
        ))
    return MapState(nodes=nodes, root_id=str(root_id), links=tuple(links))
