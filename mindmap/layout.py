"""
Layered tree auto-layout.

Positions are a function of tree shape only: depth picks the column, the index
within a breadth-first layer picks the row. Running the layout on its own
output is therefore a no-op.
"""

import logging

import networkx as nx

from mindmap.graph import MapState, to_digraph

logger = logging.getLogger(__name__)

DEFAULT_LEVEL_GAP = 220.0
DEFAULT_NODE_GAP = 90.0


def layer_ids(state: MapState):
    """Breadth-first layers of node ids starting at the root (discovery order)."""
    if state.root_id not in state.nodes:
        return []
    G = to_digraph(state)
    return [list(layer) for layer in nx.bfs_layers(G, [state.root_id])]


def auto_layout(state: MapState,
                level_gap: float = DEFAULT_LEVEL_GAP,
                node_gap: float = DEFAULT_NODE_GAP) -> MapState:
    """
    Place every node reachable from the root.

    x = depth * level_gap; y is centered on 0 within each layer. Nodes not
    reachable from the root keep their previous coordinates.
    """
    if state.root_id not in state.nodes:
        logger.warning(f"auto_layout: root {state.root_id} missing, layout skipped")
        return state

    nodes = dict(state.nodes)
    for depth, ids in enumerate(layer_ids(state)):
        top = -((len(ids) - 1) * node_gap) / 2
        for i, nid in enumerate(ids):
            nodes[nid] = nodes[nid].moved_to(depth * level_gap, top + i * node_gap)
    return state.with_nodes(nodes)
