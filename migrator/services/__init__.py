# Services package
from migrator.services.adapter import AnalysisShape, adapt_legacy_analysis, classify_analysis, empty_bundle
from migrator.services.background import BackgroundMigrationScheduler
from migrator.services.capacity import estimate_storage_size, prune_old_records
from migrator.services.language import detect_language
from migrator.services.migration_service import MigrationService, RecordOutcome
from migrator.services.run_service import RunService

__all__ = [
    "AnalysisShape",
    "adapt_legacy_analysis",
    "classify_analysis",
    "empty_bundle",
    "BackgroundMigrationScheduler",
    "estimate_storage_size",
    "prune_old_records",
    "detect_language",
    "MigrationService",
    "RecordOutcome",
    "RunService",
]
