from migrator.api.routes.health import router as health_router
from migrator.api.routes.migration import router as migration_router
from migrator.api.routes.stats import router as stats_router

__all__ = ["health_router", "migration_router", "stats_router"]
