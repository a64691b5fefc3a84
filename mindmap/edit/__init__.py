"""
Interactive editing for the mind map.

This package provides:
- actions: pure ``MapState -> MapState`` edit operations
- InteractionController: pointer/keyboard state machine and selection
- handlers: NiceGUI event wiring for app.py

Usage:
    from mindmap.edit import InteractionController, StyleUpdate
    from mindmap.edit.handlers import setup_edit_handlers
"""

from mindmap.edit.constants import (
    CHILD_OFFSET_X,
    NEW_NODE_TEXT,
    NEW_CHILD_TEXT,
)
from mindmap.edit import actions
from mindmap.edit.actions import StyleUpdate
from mindmap.edit.controller import (
    InteractionController,
    Idle,
    DraggingNode,
    Panning,
    Connecting,
    Editing,
)

__all__ = [
    'actions',
    'StyleUpdate',
    'InteractionController',
    'Idle',
    'DraggingNode',
    'Panning',
    'Connecting',
    'Editing',
    'CHILD_OFFSET_X',
    'NEW_NODE_TEXT',
    'NEW_CHILD_TEXT',
]
