from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MigrationStatusResponse(BaseModel):
    needed: bool
    candidates: int
    estimated_bytes: int
    high_water_mark: int


class MigrationRunResponse(BaseModel):
    success: bool
    migrated: int
    failed: int
    skipped: int
    deferred: int
    duration: float
    error: str | None = None


class PruneResponse(BaseModel):
    removed: int
    kept: int


class HealthResponse(BaseModel):
    database: str
    last_run_status: str | None
    background_running: bool


class StatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run_id: str
    mode: str
    status: str
    migrated: int
    failed: int
    skipped: int
    deferred: int
    duration_ms: Optional[float] = None
    error_message: str | None = None
    started_at: datetime
    ended_at: datetime | None
