"""
Path utilities for the mind-map editor.

Handles path resolution for both development mode and frozen (PyInstaller) executables.
- In development: paths are relative to the project root
- When frozen: paths are relative to the executable location

External data (db/, config.json) lives NEXT TO the executable, not bundled inside.
"""

import sys
from pathlib import Path


def get_app_dir() -> Path:
    """
    Get the application directory.

    - In development: the project root (parent of mindmap/)
    - When frozen: the directory containing the executable
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent.parent


def get_db_dir() -> Path:
    """Get the storage directory (db/) holding saved maps."""
    return get_app_dir() / "db"


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_app_dir() / "config.json"
