"""API dependencies"""

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from migrator.core.db import SessionLocal
from migrator.storage.base import KeyValueStore
from migrator.storage.sql import SQLKeyValueStore


def get_db() -> Generator[Session, None, None]:
    """Database session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return SQLKeyValueStore(db)
