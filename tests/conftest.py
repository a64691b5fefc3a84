import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from mindmap.graph import MapEdge, MapNode, MapState
from mindmap.sizing import NodeSizer


class FakeMeasurer:
    """Monospace stand-in: 8px per character, 16px lines."""

    def text_width(self, text):
        return 8.0 * len(text)

    def line_height(self):
        return 16.0


class _Handle:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler that only fires when the test says so."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = _Handle(callback)
        self.handles.append(handle)
        return handle

    @property
    def live(self):
        return [h for h in self.handles if not h.cancelled]

    def run_pending(self):
        for handle in self.live:
            handle.cancelled = True
            handle.callback()


@pytest.fixture
def measurer():
    return FakeMeasurer()


@pytest.fixture
def sizer(measurer):
    return NodeSizer(measurer)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def sample_state():
    """
    r
    ├── a
    │   └── c
    └── b
    plus a cross-link c -> b
    """
    nodes = {
        "r": MapNode("r", "Root", 0, 0, color="#fde68a"),
        "a": MapNode("a", "A", 220, -45, parent_id="r"),
        "b": MapNode("b", "B", 220, 45, parent_id="r"),
        "c": MapNode("c", "C", 440, 0, parent_id="a"),
    }
    return MapState(nodes=nodes, root_id="r", links=(MapEdge("l-1", "c", "b"),))
