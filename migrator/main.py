from contextlib import asynccontextmanager

from fastapi import FastAPI

from migrator.api.routes import health, migration, stats
from migrator.core.config import settings
from migrator.core.db import SessionLocal, engine
from migrator.core.logging import get_logger
from migrator.models import Base
from migrator.services.background import BackgroundMigrationScheduler
from migrator.services.migration_service import MigrationService
from migrator.services.run_service import RunService
from migrator.storage.sql import SQLKeyValueStore

log = get_logger("app")


def create_tables() -> None:
    """Create kv_entries and migration_runs if they do not exist yet."""
    log.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=engine)


async def run_startup_migration(service: MigrationService, scheduler: BackgroundMigrationScheduler) -> None:
    """Check, then migrate once per process (the single-writer guarantee)."""
    if not service.check_migration_needed():
        log.debug("No migration needed")
        return

    log.info("Migration needed, starting...")
    try:
        result = await service.migrate(scheduler)
        log.info(f"Startup migration: {result.model_dump()}")
    except Exception as exc:  # noqa: BLE001
        log.exception(f"Startup migration failed: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Starting application in {settings.ENV.upper()} mode")

    try:
        create_tables()
    except Exception:
        log.exception("Failed to create tables on startup")
        raise

    # Background batches outlive requests, so they get their own session
    db = SessionLocal()
    runs = RunService(db)
    service = MigrationService(SQLKeyValueStore(db), runs=runs)
    scheduler = BackgroundMigrationScheduler(service, runs=runs)
    app.state.scheduler = scheduler

    if settings.MIGRATE_ON_STARTUP:
        await run_startup_migration(service, scheduler)
    else:
        log.info("Startup migration is disabled (MIGRATE_ON_STARTUP=false)")

    yield

    log.info("Shutting down services...")
    await scheduler.shutdown()
    db.close()
    log.info("Application shutdown complete")


app = FastAPI(
    title="Dream Record Migrator",
    description="Migrates persisted dream analysis records from the legacy shape to schema v2",
    version="2.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    debug=settings.debug_enabled,
)


app.include_router(migration.router)
app.include_router(health.router)
app.include_router(stats.router)
