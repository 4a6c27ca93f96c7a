"""Health routes - System health and readiness checks."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from migrator.api.deps import get_db
from migrator.api.routes.migration import get_scheduler
from migrator.schemas.api import HealthResponse
from migrator.services.background import BackgroundMigrationScheduler
from migrator.services.run_service import RunService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(
    response: Response,
    db: Session = Depends(get_db),
    scheduler: Optional[BackgroundMigrationScheduler] = Depends(get_scheduler),
):
    """
    Checks database connectivity and the last migration run status.
    Returns 503 if the database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:  # noqa: BLE001
        response.status_code = 503
        return HealthResponse(database=f"down: {e}", last_run_status=None, background_running=False)

    last_run = RunService(db).last_run()

    return HealthResponse(
        database=db_status,
        last_run_status=last_run.status if last_run else None,
        background_running=scheduler.running if scheduler else False,
    )


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)):
    """
    Readiness probe - checks if service can serve traffic.

    Returns 200 if ready, 503 if database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
    except Exception as e:  # noqa: BLE001
        response.status_code = 503
        return {"status": "not_ready", "error": str(e), "timestamp": datetime.now(timezone.utc).isoformat()}
