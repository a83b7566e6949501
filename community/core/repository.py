"""
Keyed in-memory storage shared by every entity type.
Only storage mechanics live here: no business rules, just CRUD, predicate scans and a modification counter.
"""

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Iterable, List, Optional, TypeVar

from util.logging import logger

from .errors import InvalidArgumentError
from .identity import key_is_valid

T = TypeVar("T")
Predicate = Callable[[T], bool]


@dataclass(frozen=True)
class RepositoryStats:
    """Diagnostic snapshot of a repository."""

    entity_count: int
    modification_count: int


class IRepository(ABC, Generic[T]):
    """Abstract interface for keyed entity storage."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Insert or overwrite the entity under its key."""
        pass

    @abstractmethod
    def find_by_key(self, key: Hashable) -> Optional[T]:
        """Return the entity stored under key, or None."""
        pass

    @abstractmethod
    def exists(self, key: Hashable) -> bool:
        """Check whether a record exists for key."""
        pass

    @abstractmethod
    def list_all(self) -> List[T]:
        """Snapshot of every stored entity."""
        pass

    @abstractmethod
    def delete_by_key(self, key: Hashable) -> bool:
        """Remove the record for key; True if something was removed."""
        pass

    @abstractmethod
    def update(self, entity: T) -> Optional[T]:
        """Overwrite an existing record; None when no record exists."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of live entities."""
        pass

    @abstractmethod
    def find_first_matching(self, predicate: Optional[Predicate]) -> Optional[T]:
        """First entity satisfying predicate (None matches everything)."""
        pass

    @abstractmethod
    def find_all_matching(self, predicate: Optional[Predicate]) -> List[T]:
        """Every entity satisfying predicate (None matches everything)."""
        pass


class InMemoryRepository(IRepository[T]):
    """
    Thread-safe dict-backed repository.

    Features:
    - One lock guards the map and the modification counter, so writes on a key never interleave
    - Entities are deep-copied on the way in and on the way out
    - Linear predicate scans over the stored values (predicates must not mutate them); only matches are copied out
    """

    def __init__(self, name: str = "repository"):
        self.name = name
        self._data: Dict[Hashable, T] = {}
        self._modification_count = 0
        self._lock = threading.RLock()

    # -------- CRUD --------

    def save(self, entity: T) -> T:
        """Store the entity under its key, overwriting any existing record."""
        key = self._require_key(entity, "save")
        stored = copy.deepcopy(entity)
        with self._lock:
            self._data[key] = stored
            self._modification_count += 1
            modifications = self._modification_count

        logger.log_store_operation(self.name, "save", key, modification_count=modifications)
        return copy.deepcopy(stored)

    def save_or_update(self, entity: T) -> T:
        """Alias for save(); save already upserts."""
        return self.save(entity)

    def update(self, entity: T) -> Optional[T]:
        """Overwrite an existing record. Returns None when the key is unknown."""
        if entity is None or not _entity_key_is_valid(entity):
            return None

        key = entity.key
        stored = copy.deepcopy(entity)
        with self._lock:
            if key not in self._data:
                modifications = None
            else:
                self._data[key] = stored
                self._modification_count += 1
                modifications = self._modification_count

        if modifications is None:
            logger.log_store_operation(self.name, "update", key, status="not_found")
            return None

        logger.log_store_operation(self.name, "update", key, modification_count=modifications)
        return copy.deepcopy(stored)

    def find_by_key(self, key: Hashable) -> Optional[T]:
        if not key_is_valid(key):
            return None
        with self._lock:
            entity = self._data.get(key)
        return copy.deepcopy(entity) if entity is not None else None

    def find_by_keys(self, keys: Iterable[Hashable]) -> List[T]:
        """Entities whose key appears in keys, in unspecified order."""
        if not keys:
            return []
        wanted = set(keys)
        with self._lock:
            matches = [entity for key, entity in self._data.items() if key in wanted]
        return copy.deepcopy(matches)

    def exists(self, key: Hashable) -> bool:
        if not key_is_valid(key):
            return False
        with self._lock:
            return key in self._data

    def list_all(self) -> List[T]:
        with self._lock:
            snapshot = list(self._data.values())
        return copy.deepcopy(snapshot)

    def delete_by_key(self, key: Hashable) -> bool:
        if not key_is_valid(key):
            return False
        with self._lock:
            removed = self._data.pop(key, None) is not None
            if removed:
                self._modification_count += 1
            modifications = self._modification_count

        if removed:
            logger.log_store_operation(self.name, "delete", key, modification_count=modifications)
        return removed

    def delete(self, entity: T) -> bool:
        """Delete by the entity's own key."""
        if entity is None or not _entity_key_is_valid(entity):
            return False
        return self.delete_by_key(entity.key)

    def delete_all(self) -> None:
        """Remove every record."""
        with self._lock:
            self._data.clear()
            self._modification_count += 1
            modifications = self._modification_count
        logger.log_store_operation(self.name, "delete_all", None, modification_count=modifications)

    def count(self) -> int:
        with self._lock:
            return len(self._data)

    # -------- Predicate scans --------

    def find_first_matching(self, predicate: Optional[Predicate]) -> Optional[T]:
        with self._lock:
            for entity in list(self._data.values()):
                if predicate is None or predicate(entity):
                    return copy.deepcopy(entity)
        return None

    def find_all_matching(self, predicate: Optional[Predicate]) -> List[T]:
        with self._lock:
            matches = [entity for entity in list(self._data.values()) if predicate is None or predicate(entity)]
            return copy.deepcopy(matches)

    # -------- Diagnostics --------

    @property
    def modification_count(self) -> int:
        with self._lock:
            return self._modification_count

    def stats(self) -> RepositoryStats:
        with self._lock:
            return RepositoryStats(entity_count=len(self._data), modification_count=self._modification_count)

    def _require_key(self, entity: T, operation: str) -> Hashable:
        if entity is None:
            raise InvalidArgumentError("Entity cannot be None", operation=operation, field="entity")
        if not _entity_key_is_valid(entity):
            raise InvalidArgumentError("Entity must have a non-empty key", operation=operation, field="key")
        return entity.key


def _entity_key_is_valid(entity) -> bool:
    return key_is_valid(getattr(entity, "key", None))
