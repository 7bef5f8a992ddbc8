"""
Search history persisted in client-local key-value storage.

History is a convenience: when storage is absent or broken, reads return
an empty history and writes do nothing. Failures are logged, never raised.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from archsearch.core.exceptions import StorageUnavailableError
from archsearch.core.logger import get_logger
from archsearch.schemas.filters import FilterState

logger = get_logger(__name__)

HISTORY_KEY = "search_history"
DEFAULT_LIMIT = 5


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=lambda: uuid4().hex)
    query: str
    filters: FilterState
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def same_search(self, query: str, filters: FilterState) -> bool:
        return self.query == query and self.filters == filters


_entries_adapter = TypeAdapter(List[HistoryEntry])


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """One file per key under ``directory``."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read {key}", details={"error": str(e)}) from e

    def set_item(self, key: str, value: str) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._path(key).write_text(value, encoding="utf-8")
        except OSError as e:
            raise StorageUnavailableError(f"Cannot write {key}", details={"error": str(e)}) from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot remove {key}", details={"error": str(e)}) from e


class SearchHistoryStore:
    def __init__(self, storage: Optional[KeyValueStorage], limit: int = DEFAULT_LIMIT,
                 key: str = HISTORY_KEY, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.storage = storage
        self.limit = limit
        self.key = key
        self.clock = clock

    def entries(self) -> List[HistoryEntry]:
        if self.storage is None:
            return []
        try:
            raw = self.storage.get_item(self.key)
            return _entries_adapter.validate_json(raw) if raw else []
        except StorageUnavailableError as e:
            logger.warning("Failed to load search history: %s", e.message)
        except ValidationError as e:
            logger.warning("Discarding unreadable search history: %s", e.error_count())
        return []

    def record(self, query: str, filters: FilterState) -> Optional[HistoryEntry]:
        """Insert a search at the front; a repeated search moves to the front."""
        query = (query or "").strip()
        if self.storage is None or (not query and filters.is_pristine()):
            return None

        entry = HistoryEntry(query=query, filters=filters, created_at=self.clock())
        kept = [e for e in self.entries() if not e.same_search(query, filters)]
        updated = [entry, *kept][: self.limit]
        payload = _entries_adapter.dump_json(updated).decode("utf-8")
        try:
            self.storage.set_item(self.key, payload)
        except StorageUnavailableError as e:
            logger.warning("Failed to save search history: %s", e.message)
            return None
        return entry

    def clear(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.remove_item(self.key)
        except StorageUnavailableError as e:
            logger.warning("Failed to clear search history: %s", e.message)
