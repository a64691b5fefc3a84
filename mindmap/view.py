"""
Derived render view of a map.

Produces the geometry a renderer needs (visible nodes and edges, boxes, fills,
badges, edge curves) from a ``MapState``. Collapse only filters what is drawn
here; the stored state keeps every node.

``build_scene`` returns a plain dict so any renderer can consume it;
``render_svg`` is the renderer used by the NiceGUI shell.
"""

from html import escape
from typing import Any, Dict, List, Optional

from mindmap.graph import (
    EDGE_KIND_TREE,
    MapEdge,
    MapNode,
    MapState,
    NodeShape,
    ancestors,
    children_of,
    compute_tree_edges,
    is_hex_color,
)
from mindmap.sizing import PADDING_X, NodeSizer, display_text, wrap_lines
from mindmap.transform import Viewport
from mindmap.utils import lighten_hex

DEFAULT_FILL = "#ffffff"

# Auto-lighten step per generation when a node inherits an ancestor color
LIGHTEN_PER_DEPTH = 0.12
LIGHTEN_MAX = 0.6

TREE_EDGE_COLOR = "#94a3b8"
LINK_EDGE_COLOR = "#0ea5e9"
SELECTED_BORDER = "#0f172a"
NODE_BORDER = "#cbd5e1"
BADGE_FILLS = {"collapse": "#64748b", "reparent": "#22c55e", "connect": "#0ea5e9"}


def is_hidden(state: MapState, node_id: str) -> bool:
    """A node is hidden when any ancestor is collapsed."""
    return any(
        state.nodes[a].collapsed for a in ancestors(state, node_id) if a in state.nodes
    )


def visible_nodes(state: MapState) -> List[MapNode]:
    return [n for n in state.nodes.values() if not is_hidden(state, n.id)]


def visible_edges(state: MapState) -> List[MapEdge]:
    """
    Tree edges whose source is expanded plus cross-links, restricted to edges
    whose two endpoints are both drawn.
    """
    shown = {n.id for n in visible_nodes(state)}
    edges = []
    for edge in compute_tree_edges(state) + list(state.links):
        if edge.source not in shown or edge.target not in shown:
            continue
        if edge.kind == EDGE_KIND_TREE and state.nodes[edge.source].collapsed:
            continue
        edges.append(edge)
    return edges


def effective_color(state: MapState, node_id: str) -> str:
    """
    Node's own color, else the nearest colored ancestor lightened a bit more
    for every generation in between, else white.
    """
    node = state.nodes.get(node_id)
    if node is None:
        return DEFAULT_FILL
    if is_hex_color(node.color):
        return node.color
    for depth, anc_id in enumerate(ancestors(state, node_id), start=1):
        anc = state.nodes.get(anc_id)
        if anc is not None and is_hex_color(anc.color):
            return lighten_hex(anc.color, min(LIGHTEN_PER_DEPTH * depth, LIGHTEN_MAX))
    return DEFAULT_FILL


def edge_path(source: MapNode, target: MapNode) -> str:
    """Horizontal S-curve between two node centers."""
    mx = source.x + (target.x - source.x) / 2
    return (f"M {source.x:g} {source.y:g} "
            f"C {mx:g} {source.y:g}, {mx:g} {target.y:g}, {target.x:g} {target.y:g}")


def build_scene(state: MapState, sizer: NodeSizer,
                selected: Optional[str] = None,
                connecting: Optional[str] = None,
                editing: Optional[str] = None) -> Dict[str, Any]:
    """
    Assemble everything the renderer draws.

    Each node carries its label already wrapped to the box width the sizer
    chose, so the drawn text and the hit-test box agree.

    Badges follow the interaction rules: a collapse toggle on nodes with
    children, a reparent target on every node other than the selection, and a
    connect handle on every node other than the link source while linking.
    """
    line_height = sizer.measurer.line_height()
    nodes = []
    for node in visible_nodes(state):
        box = sizer.size_for(node)
        text = display_text(node)
        badges = []
        if children_of(state, node.id):
            badges.append(_badge(box, "collapse", "+" if node.collapsed else "−"))
        if selected and selected != node.id:
            badges.append(_badge(box, "reparent", "P"))
        if connecting and connecting != node.id:
            badges.append(_badge(box, "connect", "L"))
        nodes.append({
            "id": node.id,
            "text": text,
            "lines": wrap_lines(text, box.width - 2 * PADDING_X, sizer.measurer),
            "line_height": line_height,
            "x": node.x,
            "y": node.y,
            "width": box.width,
            "height": box.height,
            "fill": effective_color(state, node.id),
            "border": SELECTED_BORDER if node.id == selected else NODE_BORDER,
            "shape": (node.shape or NodeShape.ROUNDED).value,
            "selected": node.id == selected,
            "editing": node.id == editing,
            "badges": badges,
        })

    edges = []
    for edge in visible_edges(state):
        s, t = state.nodes[edge.source], state.nodes[edge.target]
        edges.append({
            "id": edge.id,
            "kind": edge.kind,
            "source": edge.source,
            "target": edge.target,
            "path": edge_path(s, t),
            "color": TREE_EDGE_COLOR if edge.kind == EDGE_KIND_TREE else LINK_EDGE_COLOR,
            "arrow": edge.kind != EDGE_KIND_TREE,
        })
    return {"nodes": nodes, "edges": edges}


def _badge(box, kind: str, label: str) -> Dict[str, Any]:
    x, y, w, h = box.badge_rect(kind)
    return {"kind": kind, "x": x, "y": y, "w": w, "h": h, "label": label,
            "fill": BADGE_FILLS[kind]}


# --- SVG renderer ---

def _attr(value: Any) -> str:
    """Attribute-safe text; the SVG ends up parsed as live markup."""
    return escape(str(value), quote=True)


def _num(value: Any) -> str:
    return f"{float(value):g}"


def _shape_svg(shape: str, w: float, h: float, fill: str, border: str, stroke_w: float) -> str:
    common = f'fill="{_attr(fill)}" stroke="{_attr(border)}" stroke-width="{_num(stroke_w)}"'
    if shape == NodeShape.RECT.value:
        return f'<rect x="{_num(-w / 2)}" y="{_num(-h / 2)}" width="{_num(w)}" height="{_num(h)}" {common}/>'
    if shape == NodeShape.ELLIPSE.value:
        return f'<ellipse cx="0" cy="0" rx="{_num(w / 2)}" ry="{_num(h / 2)}" {common}/>'
    if shape == NodeShape.DIAMOND.value:
        points = f"0,{_num(-h / 2)} {_num(w / 2)},0 0,{_num(h / 2)} {_num(-w / 2)},0"
        return f'<polygon points="{points}" {common}/>'
    return (f'<rect x="{_num(-w / 2)}" y="{_num(-h / 2)}" width="{_num(w)}" height="{_num(h)}" '
            f'rx="14" ry="14" {common}/>')


def _text_svg(lines: List[str], line_height: float) -> str:
    """Wrapped label as stacked tspans, vertically centered on the node."""
    first_y = -(len(lines) - 1) * line_height / 2 + 4
    spans = "".join(
        f'<tspan x="0" y="{_num(first_y + i * line_height)}">{escape(line)}</tspan>'
        for i, line in enumerate(lines)
    )
    return f'<text text-anchor="middle" font-size="14">{spans}</text>'


def render_svg(scene: Dict[str, Any], viewport: Viewport) -> str:
    """SVG fragment (no outer <svg>) with the viewport transform applied."""
    parts = [
        '<defs><marker id="arrow" markerWidth="10" markerHeight="10" refX="10" refY="3" '
        f'orient="auto" markerUnits="userSpaceOnUse"><path d="M0,0 L10,3 L0,6 Z" '
        f'fill="{LINK_EDGE_COLOR}"/></marker></defs>',
        f'<g transform="{_attr(viewport.transform_attr())}">',
    ]
    for edge in scene["edges"]:
        marker = ' marker-end="url(#arrow)"' if edge["arrow"] else ""
        parts.append(
            f'<path d="{_attr(edge["path"])}" fill="none" stroke="{_attr(edge["color"])}" '
            f'stroke-opacity="0.7" stroke-width="2" vector-effect="non-scaling-stroke"{marker}/>'
        )
    for node in scene["nodes"]:
        stroke_w = 2.5 if node["selected"] else 1.5
        parts.append(f'<g transform="translate({_num(node["x"])},{_num(node["y"])})">')
        parts.append(_shape_svg(node["shape"], node["width"], node["height"],
                                node["fill"], node["border"], stroke_w))
        parts.append(_text_svg(node["lines"], node["line_height"]))
        for badge in node["badges"]:
            parts.append(
                f'<rect class="badge badge-{_attr(badge["kind"])}" x="{_num(badge["x"])}" '
                f'y="{_num(badge["y"])}" width="{_num(badge["w"])}" height="{_num(badge["h"])}" '
                f'rx="6" ry="6" fill="{_attr(badge["fill"])}"/>'
                f'<text x="{_num(badge["x"] + badge["w"] / 2)}" '
                f'y="{_num(badge["y"] + badge["h"] / 2 + 4)}" '
                f'text-anchor="middle" font-size="12" fill="#fff">{escape(badge["label"])}</text>'
            )
        parts.append("</g>")
    parts.append("</g>")
    return "".join(parts)
