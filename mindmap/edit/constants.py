"""
Shared constants for the interactive editing layer.

Used by the controller, the pure edit actions and the importers.
"""

# Offset of a freshly created child from its parent (world units)
CHILD_OFFSET_X = 170.0

NEW_NODE_TEXT = "New node"
NEW_CHILD_TEXT = "Child"
IMPORTED_ROOT_TEXT = "Imported"

NEW_NODE_COLOR = "#e5e7eb"
NEW_CHILD_COLOR = "#e0e7ff"
ROOT_COLOR = "#fde68a"

DELETE_KEYS = ("Delete", "Backspace")
COMMIT_KEYS = ("Enter",)
CANCEL_KEYS = ("Escape",)
