"""Single-document JSON file store"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from migrator.core.logging import get_logger
from .base import KeyValueStore, StorageError

log = get_logger("storage.json_file")


class JSONFileStore(KeyValueStore):
    """Persists the whole key space as one JSON object, rewritten on every mutation"""

    name = "json_file"

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data: Optional[Dict[str, str]] = None

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._flush(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._flush(data)

    def keys(self) -> List[str]:
        return list(self._load().keys())

    def _load(self) -> Dict[str, str]:
        """Read the document once and keep it cached"""
        if self._data is not None:
            return self._data

        if not self.path.exists():
            self._data = {}
            return self._data

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Cannot read store file {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StorageError(f"Store file {self.path} does not hold a JSON object")

        self._data = {str(k): v for k, v in data.items() if isinstance(v, str)}
        dropped = len(data) - len(self._data)
        if dropped:
            log.warning(f"Ignored {dropped} non-string entries in {self.path}")
        return self._data

    def _flush(self, data: Dict[str, str]) -> None:
        tmp_file = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            tmp_file.replace(self.path)
        except OSError as exc:
            raise StorageError(f"Cannot write store file {self.path}: {exc}") from exc
