"""Eager V1 → V2 migration of persisted analysis records."""

from __future__ import annotations

import json
import time
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from migrator.core.config import Settings, settings
from migrator.core.logging import get_logger
from migrator.schemas.records import CURRENT_SCHEMA, CurrentRecord, LegacyRecord, MigrationResult
from migrator.services.adapter import adapt_legacy_analysis
from migrator.services.capacity import estimate_storage_size, prune_old_records
from migrator.services.language import detect_language
from migrator.services.run_service import RunService
from migrator.services.timestamps import (
    effective_timestamp,
    format_created_at,
    key_timestamp,
    now_millis,
    record_timestamp,
)
from migrator.storage.base import KeyValueStore, StorageError

if TYPE_CHECKING:
    from migrator.services.background import BackgroundMigrationScheduler

log = get_logger("migration_service")

DAY_MS = 24 * 60 * 60 * 1000


class RecordOutcome(str, Enum):
    MIGRATED = "migrated"
    FAILED = "failed"
    SKIPPED_UNREADABLE = "skipped_unreadable"
    SKIPPED_CURRENT = "skipped_current"
    SKIPPED_UNMIGRATABLE = "skipped_unmigratable"


def tally(result: MigrationResult, outcome: RecordOutcome) -> None:
    if outcome is RecordOutcome.MIGRATED:
        result.migrated += 1
    elif outcome is RecordOutcome.FAILED:
        result.failed += 1
    else:
        result.skipped += 1


class MigrationService:
    """Upgrades legacy history records to the current schema, in place.

    Responsibilities:
    - Probe a small sample to decide whether a run is needed
    - Prune old records when estimated usage crosses the high-water mark
    - Migrate the newest records eagerly, hand the rest to a background scheduler
    - Isolate every per-record failure

    Single-writer: callers must not run two migrations against the same store at once.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Settings = settings,
        runs: Optional[RunService] = None,
    ):
        self.store = store
        self.config = config
        self.runs = runs

    # -------------------------------------------------------------------------
    # Probe
    # -------------------------------------------------------------------------
    def candidate_keys(self) -> List[str]:
        return self.store.keys_with_prefix(self.config.HISTORY_KEY_PREFIX)

    def check_migration_needed(self) -> bool:
        """Cheap heuristic: sample the first few candidates in storage order."""
        try:
            keys = self.candidate_keys()
        except StorageError as exc:
            log.warning(f"Migration check failed: {exc}")
            return False

        for key in keys[: self.config.PROBE_SAMPLE_SIZE]:
            try:
                raw = self.store.get(key)
                if not raw:
                    continue
                record = json.loads(raw)
            except (StorageError, ValueError) as exc:
                log.debug(f"Unreadable record {key} sampled, migration needed: {exc}")
                return True

            if not isinstance(record, dict) or record.get("schema") != CURRENT_SCHEMA:
                return True

        return False

    # -------------------------------------------------------------------------
    # Eager run
    # -------------------------------------------------------------------------
    async def migrate(self, scheduler: Optional["BackgroundMigrationScheduler"] = None) -> MigrationResult:
        """Migrate the recent working set now; schedule the remainder on scheduler."""
        run = self.runs.start("eager") if self.runs else None
        try:
            result = self._migrate_eager(scheduler)
        except Exception as exc:
            log.error(f"Eager migration aborted: {exc}")
            if run is not None:
                self.runs.fail(run, exc)
            raise

        if run is not None:
            self.runs.finish(run, result)
        return result

    def _migrate_eager(self, scheduler: Optional["BackgroundMigrationScheduler"]) -> MigrationResult:
        started = time.perf_counter()
        log.info("Starting storage migration V1 -> V2")

        self._relieve_capacity()

        eager, background = self.partition()
        log.debug(f"Migrating {len(eager)} recent records, {len(background)} left for background")

        result = MigrationResult()
        for key in eager:
            tally(result, self.migrate_record(key))

        if scheduler is not None and background:
            scheduler.schedule(background)
            result.deferred = len(background)

        result.duration = (time.perf_counter() - started) * 1000
        log.info(
            f"Migration complete: migrated={result.migrated} failed={result.failed} "
            f"skipped={result.skipped} deferred={result.deferred} duration={round(result.duration)}ms"
        )
        return result

    def _relieve_capacity(self) -> None:
        used = estimate_storage_size(self.store, self.config.BYTES_PER_CHAR)
        if used > self.config.high_water_mark:
            log.warning(f"Storage usage {used}B above {self.config.high_water_mark}B, pruning old records")
            prune_old_records(self.store, self.config.PRUNE_KEEP_COUNT, self.config.HISTORY_KEY_PREFIX)

    def partition(self) -> Tuple[List[str], List[str]]:
        """Split candidates (newest first) into the eager set and the background set."""
        try:
            keys = self.candidate_keys()
        except StorageError as exc:
            log.warning(f"Could not enumerate history records, nothing to migrate: {exc}")
            return [], []

        stamped = [(effective_timestamp(self.store, key), key) for key in keys]
        stamped.sort(key=lambda pair: pair[0], reverse=True)
        log.debug(f"Found {len(stamped)} total records")

        cutoff = now_millis() - self.config.EAGER_WINDOW_DAYS * DAY_MS
        eager: List[str] = []
        background: List[str] = []
        for index, (stamp, key) in enumerate(stamped):
            if index < self.config.EAGER_NEWEST_COUNT or stamp > cutoff:
                eager.append(key)
            else:
                background.append(key)
        return eager, background

    # -------------------------------------------------------------------------
    # Per-record conversion (shared with the background scheduler)
    # -------------------------------------------------------------------------
    def migrate_record(self, key: str) -> RecordOutcome:
        try:
            raw = self.store.get(key)
            if not raw:
                return RecordOutcome.SKIPPED_UNREADABLE

            data = json.loads(raw)
            if isinstance(data, dict) and data.get("schema") == CURRENT_SCHEMA:
                return RecordOutcome.SKIPPED_CURRENT

            legacy = LegacyRecord.model_validate(data) if isinstance(data, dict) else None
            if legacy is None or not legacy.source_text:
                log.warning(f"Removing record with no dream text: {key}")
                self.store.remove(key)
                return RecordOutcome.SKIPPED_UNMIGRATABLE

            record = self.build_current_record(key, legacy, data)
            self.store.set(key, record.to_json())
            return RecordOutcome.MIGRATED
        except Exception as exc:  # noqa: BLE001
            log.warning(f"Migration failed for key {key}: {exc}")
            self._discard(key)
            return RecordOutcome.FAILED

    def build_current_record(self, key: str, legacy: LegacyRecord, data: Any) -> CurrentRecord:
        text = legacy.source_text
        lang = detect_language(text)
        return CurrentRecord(
            id=str(uuid.uuid4()),
            lang=lang,
            created_at=self._created_at(key, data),
            dream_text=text,
            analysis=adapt_legacy_analysis(legacy.legacy_analysis, text, lang, self.config.ANALYSIS_VERSION),
            version=self.config.ANALYSIS_VERSION,
            migrated=True,
        )

    @staticmethod
    def _created_at(key: str, data: Any) -> str:
        millis = record_timestamp(data) or key_timestamp(key) or now_millis()
        try:
            return format_created_at(millis)
        except (OverflowError, OSError, ValueError):
            log.debug(f"Timestamp {millis} of {key} out of range, stamping now")
            return format_created_at(now_millis())

    def _discard(self, key: str) -> None:
        try:
            self.store.remove(key)
        except Exception as exc:  # noqa: BLE001
            log.debug(f"Could not remove corrupted record {key}: {exc}")
