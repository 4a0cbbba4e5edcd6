"""Keyed stores for uploaded template and source records."""

import logging
import threading
import uuid
from typing import Generic, MutableMapping, Optional, TypeVar

from ..workbook import read_workbook
from .models import NotFoundError, SessionRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordStore(Generic[T]):
    """In-memory keyed store.

    Mutations are guarded by a lock so request handlers running in a thread
    pool can share one instance. Entries never expire.
    """

    def __init__(self, backend: Optional[MutableMapping[str, T]] = None):
        self._items: MutableMapping[str, T] = backend if backend is not None else {}
        self._lock = threading.Lock()

    def put(self, key: str, item: T) -> str:
        with self._lock:
            self._items[key] = item
        return key

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            return self._items.get(key)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._items.pop(key, None) is not None

    def values(self) -> list[T]:
        """All items in insertion order."""
        with self._lock:
            return list(self._items.values())

    def clear(self):
        with self._lock:
            self._items.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items


class SessionStore:
    """Holds uploaded templates and source files for the server endpoints."""

    def __init__(
        self,
        templates: Optional[RecordStore[SessionRecord]] = None,
        sources: Optional[RecordStore[SessionRecord]] = None,
    ):
        self.templates: RecordStore[SessionRecord] = templates or RecordStore()
        self.sources: RecordStore[SessionRecord] = sources or RecordStore()

    @staticmethod
    def _parse(content: bytes, name: str) -> SessionRecord:
        workbook = read_workbook(content, name)
        return SessionRecord.from_workbook(str(uuid.uuid4()), workbook)

    def add_template(self, content: bytes, name: str) -> SessionRecord:
        """Parse an uploaded template and store it under a new identifier."""
        record = self._parse(content, name)
        self.templates.put(record.id, record)
        logger.info(f"Stored template '{name}' as {record.id} ({len(record.data)} rows)")
        return record

    def add_source(self, content: bytes, name: str) -> SessionRecord:
        """Parse an uploaded source file and store it under a new identifier."""
        record = self._parse(content, name)
        self.sources.put(record.id, record)
        logger.info(f"Stored source '{name}' as {record.id} ({len(record.data)} rows)")
        return record

    def get_template(self, template_id: str) -> SessionRecord:
        record = self.templates.get(template_id)
        if record is None:
            raise NotFoundError(f"Template '{template_id}' not found")
        return record

    def get_source(self, source_id: str) -> SessionRecord:
        record = self.sources.get(source_id)
        if record is None:
            raise NotFoundError(f"Source file '{source_id}' not found")
        return record

    def find_source_by_name(self, name: str) -> Optional[SessionRecord]:
        """First uploaded source with the given file name."""
        for record in self.sources.values():
            if record.name == name:
                return record
        return None

    def all_sources(self) -> list[SessionRecord]:
        return self.sources.values()
