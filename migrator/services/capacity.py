"""Storage footprint estimation and pruning of old records."""

from __future__ import annotations

from typing import List

from migrator.core.config import settings
from migrator.core.logging import get_logger
from migrator.services.timestamps import effective_timestamp
from migrator.storage.base import KeyValueStore, StorageError

log = get_logger("capacity")


def estimate_storage_size(store: KeyValueStore, bytes_per_char: int = settings.BYTES_PER_CHAR) -> int:
    """Approximate bytes used by every key and value in the store.

    Fails open: a read error yields 0 so migration is never blocked by the estimate.
    """
    try:
        total = 0
        for key in store.keys():
            value = store.get(key) or ""
            total += len(key) + len(value)
        return total * bytes_per_char
    except StorageError as exc:
        log.warning(f"Failed to estimate storage size: {exc}")
        return 0


def sort_newest_first(store: KeyValueStore, keys: List[str]) -> List[str]:
    """Order keys by effective timestamp, newest first; ties keep storage order."""
    stamped = [(effective_timestamp(store, key), key) for key in keys]
    return [key for _, key in sorted(stamped, key=lambda pair: pair[0], reverse=True)]


def prune_old_records(store: KeyValueStore, keep_count: int, prefix: str = settings.HISTORY_KEY_PREFIX) -> int:
    """Remove the oldest history records beyond keep_count; returns the number removed."""
    if keep_count <= 0:
        raise ValueError(f"keep_count must be positive, got {keep_count}")

    try:
        keys = store.keys_with_prefix(prefix)
    except StorageError as exc:
        log.error(f"Failed to prune old records: {exc}")
        return 0

    if len(keys) <= keep_count:
        return 0

    to_remove = sort_newest_first(store, keys)[keep_count:]
    removed = 0
    for key in to_remove:
        try:
            store.remove(key)
            removed += 1
        except StorageError as exc:
            log.warning(f"Failed to remove old record {key}: {exc}")

    log.info(f"Pruned {removed} old records, kept {keep_count}")
    return removed
