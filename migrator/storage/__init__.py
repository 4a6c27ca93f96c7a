from migrator.storage.base import KeyValueStore, StorageError, StorageQuotaExceededError
from migrator.storage.json_file import JSONFileStore
from migrator.storage.memory import InMemoryStore
from migrator.storage.sql import SQLKeyValueStore

__all__ = [
    "KeyValueStore",
    "StorageError",
    "StorageQuotaExceededError",
    "JSONFileStore",
    "InMemoryStore",
    "SQLKeyValueStore",
]
