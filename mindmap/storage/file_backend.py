"""
File-based Storage Backend.

Implements the KeyValueStore protocol with one file per key inside a
directory. Keys are percent-encoded into file names so any key (including
``mindmap:doc:<id>``) maps to a valid, reversible file name.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)

SUFFIX = ".json"


class FileStore:
    """
    Local file storage.

    Structure:
    - {directory}/{quoted key}.json: one value per file
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    @property
    def backend_type(self) -> str:
        return "file"

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{SUFFIX}"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def put(self, key: str, value: bytes) -> None:
        """Write through a temp file so a crash never leaves a half-written value."""
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_bytes(value)
        tmp.replace(path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
            logger.info(f"Deleted {key} from {self.directory}")

    def keys(self) -> Iterable[str]:
        return [unquote(p.name[:-len(SUFFIX)]) for p in self.directory.glob(f"*{SUFFIX}")]
