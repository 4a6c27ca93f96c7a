"""Dict-backed store with an optional character quota."""

from __future__ import annotations

from typing import Dict, List, Optional

from .base import KeyValueStore, StorageQuotaExceededError


class InMemoryStore(KeyValueStore):
    """Keeps insertion order like browser local storage; quota counts key + value characters."""

    name = "memory"

    def __init__(self, initial: Optional[Dict[str, str]] = None, quota_chars: Optional[int] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self.quota_chars = quota_chars

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_chars is not None:
            current = self.used_chars() - self._size_of(key, self._data.get(key))
            if current + len(key) + len(value) > self.quota_chars:
                raise StorageQuotaExceededError(f"Quota of {self.quota_chars} chars exceeded writing {key}")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def used_chars(self) -> int:
        return sum(len(k) + len(v) for k, v in self._data.items())

    @staticmethod
    def _size_of(key: str, value: Optional[str]) -> int:
        if value is None:
            return 0
        return len(key) + len(value)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data
