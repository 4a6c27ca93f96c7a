"""Abstract key-value store interface used by the migration engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional


class StorageError(Exception):
    """Raised when the underlying store cannot complete an operation."""


class StorageQuotaExceededError(StorageError):
    """Raised when a write would push the store past its capacity."""


class KeyValueStore(ABC):
    """Synchronous, non-transactional string store (get/set/remove/keys)."""

    name: str

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Create or overwrite a key."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key; removing a missing key is a no-op."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Enumerate every key in storage order."""

    def keys_with_prefix(self, prefix: str) -> List[str]:
        return [key for key in self.keys() if key.startswith(prefix)]
