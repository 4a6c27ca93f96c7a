"""Timestamp recovery for persisted records (epoch milliseconds)."""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

from migrator.storage.base import KeyValueStore, StorageError

KEY_TIMESTAMP_PATTERN = re.compile(r"analysis_(\d+)")


def _to_millis(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) and value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip()) or None
    return None


def _parse_iso(value: Any) -> Optional[int]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def record_timestamp(record: Any) -> Optional[int]:
    """Embedded timestamp of a legacy (timestamp/ts) or current (createdAt) record."""
    if not isinstance(record, dict):
        return None
    for field in ("timestamp", "ts"):
        millis = _to_millis(record.get(field))
        if millis:
            return millis
    return _parse_iso(record.get("createdAt"))


def key_timestamp(key: str) -> int:
    match = KEY_TIMESTAMP_PATTERN.search(key)
    return int(match.group(1)) if match else 0


def effective_timestamp(store: KeyValueStore, key: str) -> int:
    """Value timestamp, then the id embedded in the key, then 0."""
    try:
        raw = store.get(key)
        millis = record_timestamp(json.loads(raw)) if raw else None
    except (StorageError, ValueError, TypeError):
        millis = None
    return millis or key_timestamp(key)


def now_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def format_created_at(millis: int) -> str:
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return format_created_at(now_millis())
