"""
Storage backend abstraction for the mind-map editor.

Supports multiple storage backends:
- FileStore: one file per key in a local directory (default)
- MemoryStore: process-local dict, nothing survives a restart
"""

from mindmap.storage.protocol import KeyValueStore
from mindmap.storage.file_backend import FileStore
from mindmap.storage.memory_backend import MemoryStore
from mindmap.storage.factory import create_backend

__all__ = [
    'KeyValueStore',
    'FileStore',
    'MemoryStore',
    'create_backend',
]
