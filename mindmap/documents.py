"""
Document library for saved maps.

Handles multi-document support on top of a KeyValueStore:
- an index of documents under ``mindmap:index`` (id, name, updated time)
- each map under ``mindmap:doc:<id>`` in the same versioned JSON envelope the
  live autosave uses

The editor itself only sees whole ``MapState`` values going in (``load_doc``)
and out (``save_doc``).
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional

from mindmap.graph import MapNode, MapState, NodeShape, uid
from mindmap.conversion import export_state_json, import_state_json
from mindmap.persistence import decode_state, encode_state
from mindmap.storage.protocol import KeyValueStore
from mindmap.edit.constants import ROOT_COLOR

logger = logging.getLogger(__name__)

INDEX_KEY = "mindmap:index"
DOC_KEY_PREFIX = "mindmap:doc:"
DEFAULT_DOC_NAME = "Untitled"


def doc_key(doc_id: str) -> str:
    return f"{DOC_KEY_PREFIX}{doc_id}"


@dataclass
class DocumentMeta:
    id: str
    name: str
    updated_at: float


def starter_state(name: str) -> MapState:
    """A new document: a single root node labelled with the document name."""
    root = MapNode(id="root", text=name, color=ROOT_COLOR, shape=NodeShape.ROUNDED)
    return MapState(nodes={root.id: root}, root_id=root.id)


class DocumentLibrary:
    """Lists, creates, renames, copies and deletes saved maps."""

    def __init__(self, backend: KeyValueStore, clock: Callable[[], float] = time.time):
        self.backend = backend
        self._clock = clock

    # --- Index I/O ---

    def _read_index(self) -> List[DocumentMeta]:
        raw = self.backend.get(INDEX_KEY)
        if raw is None:
            return []
        try:
            return [DocumentMeta(**item) for item in json.loads(raw.decode("utf-8"))]
        except (ValueError, TypeError) as e:
            logger.warning(f"Document index is unreadable, starting empty: {e}")
            return []

    def _write_index(self, docs: List[DocumentMeta]) -> None:
        self.backend.put(INDEX_KEY, json.dumps([asdict(d) for d in docs]).encode("utf-8"))

    def _touch(self, doc_id: str, name: Optional[str] = None) -> bool:
        docs = self._read_index()
        for doc in docs:
            if doc.id == doc_id:
                doc.updated_at = self._clock()
                if name is not None:
                    doc.name = name
                self._write_index(docs)
                return True
        return False

    # --- Queries ---

    def list_docs(self, query: str = "", sort: str = "updated") -> List[DocumentMeta]:
        """
        Documents, most recently updated first (``sort="name"`` for A-Z).
        ``query`` filters by case-insensitive name substring.
        """
        docs = self._read_index()
        q = query.strip().lower()
        if q:
            docs = [d for d in docs if q in d.name.lower()]
        if sort == "name":
            return sorted(docs, key=lambda d: d.name.lower())
        return sorted(docs, key=lambda d: d.updated_at, reverse=True)

    def get_meta(self, doc_id: str) -> Optional[DocumentMeta]:
        return next((d for d in self._read_index() if d.id == doc_id), None)

    def load_doc(self, doc_id: str) -> Optional[MapState]:
        raw = self.backend.get(doc_key(doc_id))
        if raw is None:
            return None
        try:
            return decode_state(raw)
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"Document {doc_id} is unreadable: {e}")
            return None

    # --- Writes ---

    def create_doc(self, name: str = DEFAULT_DOC_NAME, state: Optional[MapState] = None) -> str:
        name = name.strip() or DEFAULT_DOC_NAME
        doc_id = uid(8)
        docs = self._read_index()
        docs.append(DocumentMeta(id=doc_id, name=name, updated_at=self._clock()))
        self._write_index(docs)
        self.backend.put(doc_key(doc_id), encode_state(state or starter_state(name)))
        logger.info(f"Created document {doc_id} ({name})")
        return doc_id

    def save_doc(self, doc_id: str, state: MapState) -> None:
        self.backend.put(doc_key(doc_id), encode_state(state))
        self._touch(doc_id)

    def rename_doc(self, doc_id: str, name: str) -> bool:
        name = name.strip()
        if not name:
            return False
        return self._touch(doc_id, name=name)

    def duplicate_doc(self, doc_id: str) -> Optional[str]:
        meta = self.get_meta(doc_id)
        state = self.load_doc(doc_id)
        if meta is None or state is None:
            return None
        return self.create_doc(f"{meta.name} (copy)", state=state)

    def delete_doc(self, doc_id: str) -> None:
        self.backend.delete(doc_key(doc_id))
        self._write_index([d for d in self._read_index() if d.id != doc_id])
        logger.info(f"Deleted document {doc_id}")

    def export_doc(self, doc_id: str) -> Optional[str]:
        state = self.load_doc(doc_id)
        return export_state_json(state) if state is not None else None

    def import_doc(self, name: str, text: str) -> str:
        """Create a document from exported JSON. Raises ``InvalidImportError`` first if invalid."""
        state = import_state_json(text)
        return self.create_doc(name, state=state)
