"""In-memory sign index with pluggable persistence."""
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models import IndexEntry

logger = logging.getLogger(__name__)

META_KEY = "_meta"


def is_reserved(key: str) -> bool:
    """Keys starting with an underscore are metadata, never dialects or labels."""
    return key.startswith("_")


def serialize_index(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


class IndexStorage(ABC):
    """Persistence port for the index document."""

    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """Return the persisted document, or None if there is none."""
        pass

    @abstractmethod
    def save(self, document: Dict[str, Any]) -> None:
        """Persist the whole document, raising OSError on failure."""
        pass


class JsonFileStorage(IndexStorage):
    """
    Stores the index as one indented JSON document.

    Writes go to a temporary file in the same directory and are moved
    into place, so a crashed run never leaves a truncated index.

    Args:
        path: Index document path
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Index document is not an object: {self.path}")
        return data

    def save(self, document: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".sign-index-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(serialize_index(document))
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class MemoryStorage(IndexStorage):
    """Keeps the serialized index in memory; used by tests and dry runs."""

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self.text: Optional[str] = serialize_index(document) if document is not None else None
        self.saves = 0

    def load(self) -> Optional[Dict[str, Any]]:
        if self.text is None:
            return None
        return json.loads(self.text)

    def save(self, document: Dict[str, Any]) -> None:
        self.text = serialize_index(document)
        self.saves += 1


class IndexStore:
    """
    The lookup index for one run: dialect -> label -> entry, plus ``_meta``.

    All mutation goes through a lock so worker threads can record
    entries concurrently.

    Args:
        storage: Where the document is loaded from and saved to

    Examples:
        >>> store = IndexStore(JsonFileStorage("dataset/metadata/sign-index.json"))
        >>> store.load()
        >>> store.has_sign("HELLO", "ASL")
        True
        >>> store.get_entry("HELLO", "asl")["videoPath"]
        'dataset/processed/asl/HELLO_720p.mp4'
    """

    def __init__(self, storage: IndexStorage):
        self.storage = storage
        self._document: Dict[str, Any] = {}
        self._lock = threading.RLock()
        self.dirty = False

    def load(self, rebuild: bool = False) -> None:
        """
        Seed the in-memory index from storage unless a rebuild is requested.

        An unreadable prior index is logged and ignored.
        """
        if rebuild:
            logger.info("Rebuilding index from scratch")
            return
        try:
            existing = self.storage.load()
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load existing index: {e}")
            return
        if existing is None:
            return
        with self._lock:
            self._document = existing
        total = (existing.get(META_KEY) or {}).get("totalSigns", 0)
        logger.info(f"Loaded existing index with {total} signs")

    def save(self) -> bool:
        """Persist the document; a failed write is logged and reported as False."""
        with self._lock:
            document = self.document()
        try:
            self.storage.save(document)
        except OSError as e:
            logger.error(f"Failed to save index: {e}")
            return False
        return True

    def document(self) -> Dict[str, Any]:
        with self._lock:
            return json.loads(json.dumps(self._document))

    @property
    def meta(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._document.get(META_KEY) or {})

    def set_meta(self, meta: Dict[str, Any]) -> None:
        with self._lock:
            self._document[META_KEY] = meta

    def dialects(self) -> List[str]:
        with self._lock:
            return [
                k for k, v in self._document.items()
                if not is_reserved(k) and isinstance(v, dict)
            ]

    def labels(self, dialect: str) -> List[str]:
        with self._lock:
            table = self._document.get(dialect.upper()) or {}
            return [k for k in table if not is_reserved(k)]

    def entries(self, dialect: str) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            table = self._document.get(dialect.upper()) or {}
            return {k: v for k, v in table.items() if not is_reserved(k)}

    def get_entry(self, label: str, dialect: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            table = self._document.get(dialect.upper()) or {}
            entry = table.get(label.upper())
            return dict(entry) if isinstance(entry, dict) else None

    def has_primary(self, dialect: str, label: str) -> bool:
        """True if (dialect, label) already has a primary asset recorded."""
        entry = self.get_entry(label, dialect)
        return bool(entry and entry.get("videoPath"))

    def has_sign(self, label: str, dialect: str) -> bool:
        return self.get_entry(label, dialect) is not None

    def put(self, dialect: str, label: str, entry: IndexEntry) -> None:
        """Insert or overwrite the entry for (dialect, label)."""
        if is_reserved(dialect) or is_reserved(label):
            raise ValueError(f"Reserved index key: {dialect}/{label}")
        record = entry.to_dict()
        with self._lock:
            table = self._document.setdefault(dialect.upper(), {})
            if table.get(label) != record:
                table[label] = record
                self.dirty = True

    def available_signs(self, dialect: str) -> List[str]:
        return sorted(self.labels(dialect))

    def search(self, query: str, dialect: str) -> List[str]:
        """
        Labels in ``dialect`` containing ``query``, case-insensitively.

        Examples:
            >>> store.search("thank", "ASL")
            ['THANK_YOU']
        """
        needle = query.strip().upper().replace(" ", "_")
        return [label for label in self.available_signs(dialect) if needle in label]

    def sources(self) -> List[str]:
        found = set()
        for dialect in self.dialects():
            for entry in self.entries(dialect).values():
                if isinstance(entry, dict) and entry.get("source"):
                    found.add(entry["source"])
        return sorted(found)
