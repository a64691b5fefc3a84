"""
Saving and restoring the live map.

The map is written as JSON ``{"version": 1, "state": {...}}`` under a fixed
key of a KeyValueStore. Writes are fire-and-forget: a failing backend (disk
full, directory gone) is logged and the session carries on in memory.
"""

import json
import logging
from typing import Callable

from mindmap.graph import MapNode, MapState, NodeShape, state_from_dict, state_to_dict, uid
from mindmap.layout import auto_layout
from mindmap.storage.protocol import KeyValueStore
from mindmap.edit.constants import ROOT_COLOR

logger = logging.getLogger(__name__)

STORAGE_KEY = "mindmap:v1"
FORMAT_VERSION = 1


def demo_state() -> MapState:
    """Built-in starter map: a root with three colored branches."""
    root_id, a, b, c = uid(), uid(), uid(), uid()
    nodes = {
        root_id: MapNode(root_id, "Root idea", 0, 0, color=ROOT_COLOR, shape=NodeShape.ROUNDED),
        a: MapNode(a, "First branch", 200, -110, parent_id=root_id,
                   color="#bfdbfe", shape=NodeShape.ROUNDED),
        b: MapNode(b, "Second branch", 200, 0, parent_id=root_id,
                   color="#bbf7d0", shape=NodeShape.ROUNDED),
        c: MapNode(c, "Third branch", 200, 110, parent_id=root_id,
                   color="#fecaca", shape=NodeShape.ROUNDED),
    }
    return auto_layout(MapState(nodes=nodes, root_id=root_id))


def encode_state(state: MapState) -> bytes:
    payload = {"version": FORMAT_VERSION, "state": state_to_dict(state)}
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def decode_state(raw: bytes) -> MapState:
    """Raises ``ValueError`` for malformed or version-mismatched payloads."""
    payload = json.loads(raw.decode("utf-8"))
    if not isinstance(payload, dict) or payload.get("version") != FORMAT_VERSION:
        raise ValueError("unsupported map format version")
    state = state_from_dict(payload.get("state"))
    if state.root_id not in state.nodes:
        raise ValueError("root id does not name a node")
    return state


def save_state(backend: KeyValueStore, state: MapState, key: str = STORAGE_KEY) -> bool:
    """Write the map; returns False (after logging) when the backend fails."""
    try:
        backend.put(key, encode_state(state))
        return True
    except Exception as e:
        logger.warning(f"Could not persist map under {key}: {e}")
        return False


def load_state(backend: KeyValueStore, key: str = STORAGE_KEY,
               relayout: bool = False) -> MapState:
    """
    Read the saved map, or the (auto-laid-out) demo map when nothing usable
    is stored. With ``relayout`` the saved map is laid out again as well,
    discarding hand-placed positions.
    """
    try:
        raw = backend.get(key)
    except Exception as e:
        logger.warning(f"Could not read {key}: {e}")
        raw = None
    if raw is None:
        logger.info("No saved map found, starting from the demo map")
        return demo_state()
    try:
        state = decode_state(raw)
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning(f"Saved map under {key} is unusable ({e}), starting from the demo map")
        return demo_state()
    logger.info(f"Loaded map with {len(state.nodes)} nodes")
    return auto_layout(state) if relayout else state


def make_persister(backend: KeyValueStore, key: str = STORAGE_KEY) -> Callable[[MapState], None]:
    """Persistence callback for ``MapStore``."""
    def persist(state: MapState) -> None:
        save_state(backend, state, key)
    return persist
