"""Eager migration and migration-needed check tests"""

import json

import pytest

from migrator.services.migration_service import MigrationService, RecordOutcome
from migrator.storage.base import StorageError
from migrator.storage.memory import InMemoryStore
from migrator.tests.factories import PREFIX, current_value, legacy_value, millis_ago


class ReadFailingStore(InMemoryStore):
    def get(self, key):
        raise StorageError("read failed")


class KeysFailingStore(InMemoryStore):
    def keys(self):
        raise StorageError("enumeration failed")


class RemoveCrashingStore(InMemoryStore):
    def remove(self, key):
        raise RuntimeError("remove crashed")


class TestCheckMigrationNeeded:
    """Sampled migration-needed check"""

    def test_empty_store_needs_nothing(self, store):
        assert MigrationService(store).check_migration_needed() is False

    def test_all_current_needs_nothing(self, store):
        for i in range(3):
            store.set(f"{PREFIX}_{i}", current_value())
        assert MigrationService(store).check_migration_needed() is False

    def test_legacy_record_needs_migration(self, store):
        store.set(f"{PREFIX}_0", current_value())
        store.set(f"{PREFIX}_1", legacy_value())
        assert MigrationService(store).check_migration_needed() is True

    def test_unparsable_record_needs_migration(self, store):
        store.set(f"{PREFIX}_0", "{not json")
        assert MigrationService(store).check_migration_needed() is True

    def test_samples_only_first_five_in_storage_order(self, store):
        for i in range(5):
            store.set(f"{PREFIX}_{i}", current_value())
        store.set(f"{PREFIX}_legacy", legacy_value())
        assert MigrationService(store).check_migration_needed() is False

    def test_ignores_other_prefixes_and_empty_values(self, store):
        store.set("dreamJournal", legacy_value())
        store.set(f"{PREFIX}_0", "")
        assert MigrationService(store).check_migration_needed() is False

    def test_does_not_modify_store(self, store):
        store.set(f"{PREFIX}_0", legacy_value())
        before = dict((key, store.get(key)) for key in store.keys())
        MigrationService(store).check_migration_needed()
        assert dict((key, store.get(key)) for key in store.keys()) == before


class TestMigrateRecord:
    """Per-record conversion and fault isolation"""

    def test_unreadable_record_is_skipped(self, store):
        store.set(f"{PREFIX}_0", "")
        assert MigrationService(store).migrate_record(f"{PREFIX}_0") is RecordOutcome.SKIPPED_UNREADABLE
        assert MigrationService(store).migrate_record(f"{PREFIX}_missing") is RecordOutcome.SKIPPED_UNREADABLE

    def test_corrupted_record_is_deleted_and_failed(self, store):
        store.set(f"{PREFIX}_0", "{broken json")
        assert MigrationService(store).migrate_record(f"{PREFIX}_0") is RecordOutcome.FAILED
        assert f"{PREFIX}_0" not in store

    def test_text_less_record_is_deleted(self, store):
        store.set(f"{PREFIX}_0", json.dumps({"timestamp": millis_ago(1), "analysis": {}}))
        assert MigrationService(store).migrate_record(f"{PREFIX}_0") is RecordOutcome.SKIPPED_UNMIGRATABLE
        assert f"{PREFIX}_0" not in store

    def test_non_object_record_is_unmigratable(self, store):
        store.set(f"{PREFIX}_0", json.dumps(["a", "list"]))
        assert MigrationService(store).migrate_record(f"{PREFIX}_0") is RecordOutcome.SKIPPED_UNMIGRATABLE

    def test_text_field_fallback(self, store):
        store.set(f"{PREFIX}_0", json.dumps({"text": "  spaced text  ", "ts": millis_ago(2)}))
        assert MigrationService(store).migrate_record(f"{PREFIX}_0") is RecordOutcome.MIGRATED
        assert json.loads(store.get(f"{PREFIX}_0"))["dreamText"] == "  spaced text  "

    def test_results_field_is_used_for_analysis(self, store):
        results = {"emotions": [{"emotion": "fear", "intensity": 60, "valence": "neg"}]}
        store.set(f"{PREFIX}_0", legacy_value(results=results))
        MigrationService(store).migrate_record(f"{PREFIX}_0")
        record = json.loads(store.get(f"{PREFIX}_0"))
        assert record["analysis"]["emotions"]["neg"] == 60

    def test_write_failure_removes_record_and_counts_failed(self):
        store = InMemoryStore(quota_chars=400)
        store.set(f"{PREFIX}_0", legacy_value("short"))
        assert MigrationService(store).migrate_record(f"{PREFIX}_0") is RecordOutcome.FAILED
        assert f"{PREFIX}_0" not in store

    def test_read_error_counts_failed(self):
        assert MigrationService(ReadFailingStore()).migrate_record(f"{PREFIX}_0") is RecordOutcome.FAILED

    def test_delete_error_after_failure_is_swallowed(self):
        store = RemoveCrashingStore({f"{PREFIX}_0": "{broken json"})
        assert MigrationService(store).migrate_record(f"{PREFIX}_0") is RecordOutcome.FAILED
        assert f"{PREFIX}_0" in store

    def test_falsy_analysis_falls_back_to_results(self, store):
        results = {"emotions": [{"emotion": "joy", "intensity": 40, "valence": "pos"}]}
        store.set(f"{PREFIX}_0", legacy_value(analysis="", results=results))
        MigrationService(store).migrate_record(f"{PREFIX}_0")
        assert json.loads(store.get(f"{PREFIX}_0"))["analysis"]["emotions"]["pos"] == 40

    def test_configured_version_is_used_throughout(self, store, config):
        store.set(f"{PREFIX}_0", legacy_value())
        bumped = config.model_copy(update={"ANALYSIS_VERSION": "3.0.0"})
        MigrationService(store, config=bumped).migrate_record(f"{PREFIX}_0")
        record = json.loads(store.get(f"{PREFIX}_0"))
        assert record["version"] == "3.0.0"
        assert record["analysis"]["analysisVersion"] == "3.0.0"

    def test_v2_record_shape(self, store):
        created = 1714564800000  # 2024-05-01T12:00:00Z
        store.set(f"{PREFIX}_0", json.dumps({"dreamText": "I saw a red door", "timestamp": created}))
        MigrationService(store).migrate_record(f"{PREFIX}_0")
        record = json.loads(store.get(f"{PREFIX}_0"))

        assert record["schema"] == 2
        assert record["lang"] == "en"
        assert record["createdAt"] == "2024-05-01T12:00:00.000Z"
        assert record["dreamText"] == "I saw a red door"
        assert record["version"] == "2.0.0"
        assert record["migrated"] is True
        assert len(record["id"]) == 36
        assert record["analysis"]["sourceText"] == "I saw a red door"
        assert record["analysis"]["language"] == "en"

    def test_created_at_falls_back_to_key_timestamp(self, store):
        store.set("analysisHistory_analysis_1714564800000", json.dumps({"dreamText": "undated"}))
        MigrationService(store).migrate_record("analysisHistory_analysis_1714564800000")
        record = json.loads(store.get("analysisHistory_analysis_1714564800000"))
        assert record["createdAt"] == "2024-05-01T12:00:00.000Z"


class TestEagerMigration:
    """migrate() end-to-end against an in-memory store"""

    @pytest.mark.asyncio
    async def test_three_record_scenario(self, store):
        store.set(f"{PREFIX}_a", json.dumps({"dreamText": "İyi bir rüya gördüm"}, ensure_ascii=False))
        store.set(f"{PREFIX}_b", current_value())
        store.set(f"{PREFIX}_c", json.dumps({"dreamText": "", "timestamp": millis_ago(1)}))
        untouched = store.get(f"{PREFIX}_b")

        result = await MigrationService(store).migrate()

        assert (result.migrated, result.skipped, result.failed) == (1, 2, 0)
        record = json.loads(store.get(f"{PREFIX}_a"))
        assert record["schema"] == 2
        assert record["lang"] == "tr"
        assert record["dreamText"] == "İyi bir rüya gördüm"
        assert record["analysis"]["emotions"]["neu"] == 100
        assert store.get(f"{PREFIX}_b") == untouched
        assert f"{PREFIX}_c" not in store
        assert result.duration >= 0

    @pytest.mark.asyncio
    async def test_second_run_is_a_noop(self, store):
        for i in range(5):
            store.set(f"{PREFIX}_{i}", legacy_value(f"dream number {i}", days_ago=i))

        first = await MigrationService(store).migrate()
        snapshot = {key: store.get(key) for key in store.keys()}
        second = await MigrationService(store).migrate()

        assert first.migrated == 5
        assert second.migrated == 0
        assert second.skipped == 5
        assert {key: store.get(key) for key in store.keys()} == snapshot

    @pytest.mark.asyncio
    async def test_text_is_preserved_exactly(self, store):
        texts = ["plain", "  leading and trailing  ", "line\nbreak", "çok güzel bir rüya", "emoji 🌙"]
        for i, text in enumerate(texts):
            store.set(f"{PREFIX}_{i}", legacy_value(text, days_ago=i))

        await MigrationService(store).migrate()

        for i, text in enumerate(texts):
            assert json.loads(store.get(f"{PREFIX}_{i}"))["dreamText"] == text

    @pytest.mark.asyncio
    async def test_failures_do_not_abort_the_batch(self, store):
        store.set(f"{PREFIX}_0", "{corrupt")
        store.set(f"{PREFIX}_1", legacy_value("good one"))
        store.set(f"{PREFIX}_2", "null")

        result = await MigrationService(store).migrate()

        assert result.migrated == 1
        assert result.failed == 1
        assert result.skipped == 1
        assert f"{PREFIX}_0" not in store
        assert f"{PREFIX}_2" not in store

    @pytest.mark.asyncio
    async def test_enumeration_failure_returns_empty_result(self):
        result = await MigrationService(KeysFailingStore()).migrate()
        assert (result.migrated, result.failed, result.skipped, result.deferred) == (0, 0, 0, 0)

    @pytest.mark.asyncio
    async def test_prunes_when_above_high_water_mark(self, config):
        store = InMemoryStore()
        for i in range(50):
            store.set(f"{PREFIX}_{i:02d}", legacy_value(f"dream {i}", days_ago=i))
        tight = config.model_copy(update={"STORAGE_CEILING_BYTES": 1000})

        result = await MigrationService(store, config=tight).migrate()

        remaining = sorted(store.keys_with_prefix(PREFIX))
        assert remaining == [f"{PREFIX}_{i:02d}" for i in range(30)]
        assert result.migrated == 30
        assert all(json.loads(store.get(key))["schema"] == 2 for key in remaining)

    @pytest.mark.asyncio
    async def test_no_pruning_below_high_water_mark(self, store):
        for i in range(40):
            store.set(f"{PREFIX}_{i:02d}", legacy_value(days_ago=i))

        result = await MigrationService(store).migrate()

        assert result.migrated == 40
        assert len(store.keys_with_prefix(PREFIX)) == 40


class TestPartition:
    """Eager window selection"""

    def test_newest_count_and_window(self, config):
        store = InMemoryStore()
        for i in range(8):
            store.set(f"{PREFIX}_{i}", legacy_value(days_ago=i * 10))
        policy = config.model_copy(update={"EAGER_NEWEST_COUNT": 2, "EAGER_WINDOW_DAYS": 30})

        eager, background = MigrationService(store, config=policy).partition()

        # 0, 10 by rank; 20 inside the window; 30+ outside
        assert eager == [f"{PREFIX}_0", f"{PREFIX}_1", f"{PREFIX}_2"]
        assert background == [f"{PREFIX}_{i}" for i in range(3, 8)]

    def test_partition_is_disjoint_and_complete(self, config):
        store = InMemoryStore()
        for i in range(120):
            store.set(f"{PREFIX}_{i}", legacy_value(days_ago=i))

        eager, background = MigrationService(store, config=config).partition()

        assert set(eager).isdisjoint(background)
        assert set(eager) | set(background) == set(store.keys())
        assert len(eager) == 50

    @pytest.mark.asyncio
    async def test_background_set_is_not_touched_without_scheduler(self, config):
        store = InMemoryStore()
        for i in range(60):
            store.set(f"{PREFIX}_{i:02d}", legacy_value(days_ago=40 + i))

        result = await MigrationService(store, config=config).migrate()

        assert result.migrated == 50
        assert result.deferred == 0
        assert json.loads(store.get(f"{PREFIX}_59")).get("schema") is None
