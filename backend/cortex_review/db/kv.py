"""
Key-value media for session persistence.

Provides:
- KeyValueStore: abstract interface (get/set/remove a string value by key)
- InMemoryKeyValueStore: process-local dict, used by tests and the memory backend
- SqlKeyValueStore: SQLAlchemy-backed table, survives restarts
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from cortex_review.core.errors import StorageUnavailableError
from cortex_review.db.models.kv_entry import KeyValueORM
from cortex_review.models.base import utc_now


class KeyValueStore(ABC):
    """Synchronous string key-value medium."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove ``key``; absent keys are ignored."""


class InMemoryKeyValueStore(KeyValueStore):
    """In-memory medium. Data is lost when the process stops."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Medium backed by the ``kv_entries`` table.

    Driver failures surface as ``StorageUnavailableError``.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize with a SQLAlchemy session factory."""
        self._session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueORM, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise _unavailable("get_item", key, e) from e

    def set_item(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueORM, key)
                if entry is None:
                    db.add(KeyValueORM(key=key, value=value))
                else:
                    entry.value = value
                    entry.updated_at = utc_now()
                db.commit()
        except SQLAlchemyError as e:
            raise _unavailable("set_item", key, e) from e

    def remove_item(self, key: str) -> None:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueORM, key)
                if entry is not None:
                    db.delete(entry)
                    db.commit()
        except SQLAlchemyError as e:
            raise _unavailable("remove_item", key, e) from e


def _unavailable(operation: str, key: str, error: Exception) -> StorageUnavailableError:
    return StorageUnavailableError(
        f"Key-value storage failed during {operation}",
        operation=operation,
        service="kv_store",
        details={"storage_key": key},
        original_error=error,
    )
