"""
Import and export of maps.

Supported formats:
- JSON / YAML: the full map (nodes with positions and styling, cross-links,
  root id). Exporting then importing gives back the same map.
- Outline: an indented bullet list ("- item", "  - child", "1. item").
  Importing builds a fresh tree with new ids and lays it out; exporting keeps
  only the tree of texts.

Importers raise ``InvalidImportError`` with a message meant for the user. They
never touch the live store; the caller decides what to do with the result.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import yaml

from mindmap.graph import MapNode, MapState, children_of, state_from_dict, state_to_dict, uid
from mindmap.layout import auto_layout
from mindmap.edit.constants import IMPORTED_ROOT_TEXT

logger = logging.getLogger(__name__)

_BULLET = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+(.*)$")
_CHECKBOX = re.compile(r"^\s*\[(?: |x|X)\]\s*")
_INDENT = re.compile(r"^(\s*)")
INDENT_WIDTH = 2


class InvalidImportError(ValueError):
    """Raised when imported text cannot be turned into a map."""


def _state_from_mapping(data: Any, fmt: str) -> MapState:
    # accept the persisted envelope {"version": ..., "state": {...}} too
    if isinstance(data, dict) and "state" in data and "nodes" not in data:
        data = data["state"]
    try:
        state = state_from_dict(data)
    except (ValueError, TypeError) as e:
        raise InvalidImportError(f"Invalid mindmap {fmt}: {e}") from e
    if state.root_id not in state.nodes:
        raise InvalidImportError(f"Invalid mindmap {fmt}: root node {state.root_id!r} is missing")
    return state


def import_state_json(text: str) -> MapState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidImportError(f"Invalid mindmap JSON: {e.msg}") from e
    return _state_from_mapping(data, "JSON")


def import_state_yaml(text: str) -> MapState:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidImportError(f"Invalid mindmap YAML: {e}") from e
    return _state_from_mapping(data, "YAML")


def _indent_level(line: str) -> int:
    expanded = line.replace("\t", " " * INDENT_WIDTH)
    return len(_INDENT.match(expanded).group(1)) // INDENT_WIDTH


def outline_to_state(text: str) -> MapState:
    """
    Parse an indented bullet outline into a laid-out map.

    Each bullet becomes a node whose parent is the nearest shallower bullet
    above it. Several top-level bullets are gathered under a synthetic root.
    """
    nodes: Dict[str, MapNode] = {}
    stack: List[str] = []
    roots: List[str] = []

    for raw in text.replace("\r", "").split("\n"):
        stripped = raw.strip()
        if not stripped or stripped.startswith("```"):
            continue
        match = _BULLET.match(raw)
        if not match:
            continue
        item = _CHECKBOX.sub("", match.group(1)).strip()
        if not item:
            continue
        level = _indent_level(raw)
        while len(stack) > level:
            stack.pop()
        node_id = uid()
        parent_id = stack[-1] if stack else None
        if parent_id is None:
            roots.append(node_id)
        nodes[node_id] = MapNode(id=node_id, text=item, parent_id=parent_id)
        stack.append(node_id)

    if not nodes:
        raise InvalidImportError("Outline contains no bullet items")

    if len(roots) == 1:
        root_id = roots[0]
    else:
        root_id = uid()
        for rid in roots:
            nodes[rid] = MapNode(id=rid, text=nodes[rid].text, parent_id=root_id)
        nodes = {root_id: MapNode(id=root_id, text=IMPORTED_ROOT_TEXT), **nodes}

    logger.info(f"Parsed outline into {len(nodes)} nodes")
    return auto_layout(MapState(nodes=nodes, root_id=root_id))


def export_state_json(state: MapState) -> str:
    return json.dumps(state_to_dict(state), indent=2, ensure_ascii=False)


def export_state_yaml(state: MapState) -> str:
    return yaml.safe_dump(state_to_dict(state), sort_keys=False, allow_unicode=True)


def build_label_tree(state: MapState, root_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Nested text-only view of the tree. Ids are stripped.

    Format:
    [
      {"text": "Root", "children": [{"text": "Child", "children": []}]}
    ]
    """
    start = root_id or state.root_id
    if start not in state.nodes:
        return []
    seen = set()

    def _recruit(node: MapNode) -> Dict[str, Any]:
        seen.add(node.id)
        return {
            "text": node.text,
            "children": [_recruit(c) for c in children_of(state, node.id) if c.id not in seen],
        }

    return [_recruit(state.nodes[start])]


def export_outline(state: MapState) -> str:
    """Indented bullet outline of the tree under the root (cross-links are dropped)."""
    lines: List[str] = []

    def _emit(items: List[Dict[str, Any]], depth: int) -> None:
        for item in items:
            text = " ".join(item["text"].split()) or "(empty)"
            lines.append(f"{' ' * (INDENT_WIDTH * depth)}- {text}")
            _emit(item["children"], depth + 1)

    _emit(build_label_tree(state), 0)
    return "\n".join(lines) + "\n"
