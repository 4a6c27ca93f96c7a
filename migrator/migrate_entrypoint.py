"""Migration entrypoint - Standalone script for running the record migration.

Usage:
    python -m migrator.migrate_entrypoint              # Migrate everything (eager + background)
    python -m migrator.migrate_entrypoint run          # Same as above
    python -m migrator.migrate_entrypoint check        # Exit 1 if migration is needed
    python -m migrator.migrate_entrypoint prune 30     # Keep only the 30 newest records
"""

import asyncio
import sys

from migrator.core.config import settings
from migrator.core.db import SessionLocal, engine
from migrator.core.logging import get_logger
from migrator.models import Base
from migrator.schemas.records import MigrationResult
from migrator.services.background import BackgroundMigrationScheduler
from migrator.services.capacity import prune_old_records
from migrator.services.migration_service import MigrationService
from migrator.services.run_service import RunService
from migrator.storage.sql import SQLKeyValueStore

logger = get_logger("migrate_entrypoint")


async def run_full_migration() -> MigrationResult:
    """Eager run, then drain the background set in this process."""
    with SessionLocal() as db:
        runs = RunService(db)
        service = MigrationService(SQLKeyValueStore(db), runs=runs)
        scheduler = BackgroundMigrationScheduler(
            service,
            config=settings.model_copy(update={"FALLBACK_DELAY_SECONDS": 0.0}),
            runs=runs,
        )
        result = await service.migrate(scheduler)
        await scheduler.wait_idle()
        return result


def check() -> bool:
    with SessionLocal() as db:
        return MigrationService(SQLKeyValueStore(db)).check_migration_needed()


def prune(keep: int) -> int:
    with SessionLocal() as db:
        return prune_old_records(SQLKeyValueStore(db), keep, settings.HISTORY_KEY_PREFIX)


def main():
    """Main entry point for the migration CLI."""
    Base.metadata.create_all(bind=engine)
    command = sys.argv[1] if len(sys.argv) > 1 else "run"

    if command == "check":
        needed = check()
        logger.info(f"Migration needed: {needed}")
        sys.exit(1 if needed else 0)

    if command == "prune":
        try:
            keep = int(sys.argv[2]) if len(sys.argv) > 2 else settings.PRUNE_KEEP_COUNT
            removed = prune(keep)
        except ValueError as exc:
            logger.error(f"Invalid prune count: {exc}")
            sys.exit(1)
        logger.info(f"Pruned {removed} records")
        return removed

    if command != "run":
        logger.error(f"Invalid command: {command}. Must be one of: run, check, prune")
        sys.exit(1)

    logger.info("Migration starting...")
    result = asyncio.run(run_full_migration())
    logger.info(f"Migration completed: {result.model_dump()}")

    if result.failed:
        sys.exit(1)
    return result


if __name__ == "__main__":
    main()
