"""Stats routes - Migration run observability."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from migrator.api.deps import get_db
from migrator.schemas.api import StatsResponse
from migrator.services.run_service import RunService

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=list[StatsResponse])
def get_migration_stats(
    mode: Optional[Literal["eager", "background"]] = Query(None, description="Filter by run mode"),
    status: Optional[str] = Query(None, description="Filter by status (running, success, failure)"),
    limit: int = Query(10, ge=1, le=50, description="Number of runs to return"),
    db: Session = Depends(get_db),
):
    """
    Recent migration runs with their counters.

    Individual record failures are not listed; only the aggregate counts.
    """
    runs = RunService(db).list_runs(mode=mode, status=status, limit=limit)

    return [
        StatsResponse(
            run_id=str(run.run_id),
            mode=run.mode,
            status=run.status,
            migrated=run.migrated,
            failed=run.failed,
            skipped=run.skipped,
            deferred=run.deferred,
            duration_ms=run.duration_ms,
            error_message=run.error_message,
            started_at=run.started_at,
            ended_at=run.ended_at,
        )
        for run in runs
    ]
