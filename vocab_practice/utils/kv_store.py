# vocab_practice/utils/kv_store.py
"""
Synchronous durable key-value store holding string blobs.

Two backends share the same get/set/remove surface: an in-memory dict and a
SQLAlchemy table. Backend failures surface as StorageError so callers can
degrade instead of crashing.
"""
from typing import Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from vocab_practice.models.records import KeyValueEntry
from vocab_practice.utils.config import settings
from vocab_practice.utils.logger import logger


class StorageError(Exception):
    """Raised when the underlying storage rejects an operation."""


class KeyValueStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class SqlKeyValueStore(KeyValueStore):
    """Key-value store persisted in the `kv_entries` table."""

    def __init__(self, url: Optional[str] = None):
        url = url if url is not None else settings.storage_url
        self.engine = create_engine(url, echo=False)
        KeyValueEntry.__table__.create(self.engine, checkfirst=True)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info(f"SqlKeyValueStore initialized at {url}")

    def get(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as session:
                entry = session.get(KeyValueEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as session:
                entry = session.get(KeyValueEntry, key)
                if entry:
                    entry.value = value
                else:
                    session.add(KeyValueEntry(key=key, value=value))
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write '{key}': {e}") from e

    def remove(self, key: str) -> None:
        try:
            with self._session_factory() as session:
                entry = session.get(KeyValueEntry, key)
                if entry is not None:
                    session.delete(entry)
                    session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to remove '{key}': {e}") from e


def open_store(url: Optional[str] = None) -> KeyValueStore:
    """Opens the configured durable store, falling back to memory when it is unavailable."""
    try:
        return SqlKeyValueStore(url)
    except (SQLAlchemyError, StorageError) as e:
        logger.error(f"Durable storage unavailable ({e}); falling back to in-memory store.")
        return MemoryKeyValueStore()
