"""
KeyValueStore Protocol Definition.

The engine persists maps through an opaque key-value byte store. Both
FileStore (local files) and MemoryStore (tests, ephemeral sessions) conform to
this protocol.
"""

from typing import Iterable, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Abstract protocol for storage backends.

    Values are raw bytes; callers own serialization. Implementations may raise
    ``OSError`` (or a subclass) when the underlying medium is unavailable or
    full. Callers decide whether that is fatal.
    """

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier ('file' or 'memory')."""
        ...

    def get(self, key: str) -> Optional[bytes]:
        """
        Read a value.

        Returns:
            The stored bytes, or None when the key is absent.
        """
        ...

    def put(self, key: str, value: bytes) -> None:
        """Write (create or replace) a value."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        ...

    def keys(self) -> Iterable[str]:
        """All keys currently stored, in no particular order."""
        ...
