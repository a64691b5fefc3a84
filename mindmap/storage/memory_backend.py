"""
In-memory storage backend.

Used by tests and as the fallback when no storage directory is configured.
Contents are lost when the process exits.
"""

from typing import Dict, Iterable, Optional


class MemoryStore:
    """Dict-backed implementation of the KeyValueStore protocol."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    @property
    def backend_type(self) -> str:
        return "memory"

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterable[str]:
        return list(self._data.keys())
