"""Migration routes - Probe, run and prune the record store."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from migrator.api.deps import get_db, get_store
from migrator.core.config import settings
from migrator.core.logging import get_logger
from migrator.schemas.api import MigrationRunResponse, MigrationStatusResponse, PruneResponse
from migrator.services.background import BackgroundMigrationScheduler
from migrator.services.capacity import estimate_storage_size, prune_old_records
from migrator.services.migration_service import MigrationService
from migrator.services.run_service import RunService
from migrator.storage.base import KeyValueStore

router = APIRouter(prefix="/migration", tags=["migration"])
log = get_logger("migration_routes")


def get_scheduler(request: Request) -> Optional[BackgroundMigrationScheduler]:
    return getattr(request.app.state, "scheduler", None)


@router.get("/status", response_model=MigrationStatusResponse)
def migration_status(store: KeyValueStore = Depends(get_store)):
    """
    Cheap probe for the UI: whether a migration run is warranted.

    Samples a handful of records only; it is a gate, not a full scan.
    """
    service = MigrationService(store)
    return MigrationStatusResponse(
        needed=service.check_migration_needed(),
        candidates=len(service.candidate_keys()),
        estimated_bytes=estimate_storage_size(store, settings.BYTES_PER_CHAR),
        high_water_mark=settings.high_water_mark,
    )


@router.post("/run", response_model=MigrationRunResponse)
async def run_migration(
    store: KeyValueStore = Depends(get_store),
    db: Session = Depends(get_db),
    scheduler: Optional[BackgroundMigrationScheduler] = Depends(get_scheduler),
):
    """
    Run eager migration of recent records.

    1. Prune old records if storage is above the high-water mark
    2. Migrate the newest records and everything inside the recent window
    3. Queue older records for background migration
    """
    if scheduler is not None and scheduler.running:
        raise HTTPException(status_code=409, detail="Background migration still running")

    log.info("Migration triggered")
    service = MigrationService(store, runs=RunService(db))
    try:
        result = await service.migrate(scheduler)
    except Exception as exc:  # noqa: BLE001
        log.error(f"Migration failed: {exc}")
        return MigrationRunResponse(success=False, migrated=0, failed=0, skipped=0, deferred=0, duration=0.0, error=str(exc))

    return MigrationRunResponse(success=True, **result.model_dump())


@router.post("/prune", response_model=PruneResponse)
def prune(
    keep: int = Query(settings.PRUNE_KEEP_COUNT, ge=1, description="Number of most recent records to keep"),
    store: KeyValueStore = Depends(get_store),
):
    """Delete the oldest history records beyond `keep`."""
    removed = prune_old_records(store, keep, settings.HISTORY_KEY_PREFIX)
    kept = len(store.keys_with_prefix(settings.HISTORY_KEY_PREFIX))
    return PruneResponse(removed=removed, kept=kept)
