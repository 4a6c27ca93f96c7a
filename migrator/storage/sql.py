"""SQLAlchemy-backed key-value store."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from migrator.models.records import KeyValueEntry
from .base import KeyValueStore, StorageError


class SQLKeyValueStore(KeyValueStore):
    """Stores each key as a row in kv_entries; every mutation commits on its own."""

    name = "sql"

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        try:
            entry = self.db.get(KeyValueEntry, key)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc
        return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        try:
            entry = self.db.get(KeyValueEntry, key)
            if entry is None:
                entry = KeyValueEntry(key=key, value=value)
            else:
                entry.value = value
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to write {key}: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            self.db.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Failed to remove {key}: {exc}") from exc

    def keys(self) -> List[str]:
        try:
            return list(self.db.execute(select(KeyValueEntry.key)).scalars())
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to enumerate keys: {exc}") from exc
