"""Persistence of migration run summaries for /stats and /health."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from migrator.models.runs import MigrationRun
from migrator.schemas.records import MigrationResult

RunMode = Literal["eager", "background"]


class RunService:
    """Records one MigrationRun row per eager run or background batch."""

    def __init__(self, db: Session):
        self.db = db

    def start(self, mode: RunMode) -> MigrationRun:
        run = MigrationRun(mode=mode, status="running", started_at=datetime.now(timezone.utc))
        self.db.add(run)
        self.db.commit()
        return run

    def finish(self, run: MigrationRun, result: MigrationResult) -> None:
        run.status = "success"
        run.migrated = result.migrated
        run.failed = result.failed
        run.skipped = result.skipped
        run.deferred = result.deferred
        run.duration_ms = result.duration
        run.ended_at = datetime.now(timezone.utc)
        self.db.add(run)
        self.db.commit()

    def fail(self, run: MigrationRun, exc: BaseException) -> None:
        self.db.rollback()
        run.status = "failure"
        run.error_message = str(exc)
        run.ended_at = datetime.now(timezone.utc)
        self.db.add(run)
        self.db.commit()

    def list_runs(
        self,
        mode: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 10,
    ) -> List[MigrationRun]:
        stmt = select(MigrationRun).order_by(MigrationRun.started_at.desc())
        if mode:
            stmt = stmt.where(MigrationRun.mode == mode)
        if status:
            stmt = stmt.where(MigrationRun.status == status)
        return list(self.db.execute(stmt.limit(limit)).scalars())

    def last_run(self) -> Optional[MigrationRun]:
        runs = self.list_runs(limit=1)
        return runs[0] if runs else None
