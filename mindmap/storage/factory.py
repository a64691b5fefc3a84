"""
Backend Factory.

Creates the storage backend selected in the editor settings.
"""

import logging
from typing import TYPE_CHECKING

from mindmap.storage.file_backend import FileStore
from mindmap.storage.memory_backend import MemoryStore

if TYPE_CHECKING:
    from mindmap.config import EditorSettings
    from mindmap.storage.protocol import KeyValueStore

logger = logging.getLogger(__name__)

# Default backend type
DEFAULT_BACKEND = "file"

BACKEND_TYPES = ("file", "memory")


def create_backend(settings: "EditorSettings") -> "KeyValueStore":
    """
    Create the backend named by ``settings.storage_backend``.

    Unknown names fall back to the file backend. A file backend that cannot
    create its directory degrades to memory-only storage.
    """
    backend_type = settings.storage_backend
    if backend_type not in BACKEND_TYPES:
        logger.warning(f"Unknown storage backend {backend_type!r}, using {DEFAULT_BACKEND}")
        backend_type = DEFAULT_BACKEND

    if backend_type == "memory":
        return MemoryStore()

    try:
        return FileStore(settings.storage_dir)
    except OSError as e:
        logger.warning(f"Storage directory {settings.storage_dir} unavailable ({e}); "
                       f"continuing in memory")
        return MemoryStore()
