from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment mode: dev or prod
    ENV: Literal["dev", "prod"] = "dev"

    # Database backing the record store and the run log
    DATABASE_URL: str = "sqlite:///./migrator.db"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_FILE: str = "migrator.log"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "14 days"
    SLACK_WEBHOOK_URL: str | None = None

    # Record layout
    HISTORY_KEY_PREFIX: str = "analysisHistory"
    ANALYSIS_VERSION: str = "2.0.0"

    # Capacity policy
    STORAGE_CEILING_BYTES: int = 5_000_000  # assumed platform limit (5 MB)
    HIGH_WATER_RATIO: float = 0.9
    BYTES_PER_CHAR: int = 2  # UTF-16
    PRUNE_KEEP_COUNT: int = 30

    # Eager window
    EAGER_NEWEST_COUNT: int = 50
    EAGER_WINDOW_DAYS: int = 30
    PROBE_SAMPLE_SIZE: int = 5

    # Background migration
    BACKGROUND_YIELD_EVERY: int = 10
    BACKGROUND_YIELD_SECONDS: float = 0.1
    IDLE_TIMEOUT_SECONDS: float = 5.0
    FALLBACK_DELAY_SECONDS: float = 2.0

    # Run check + migrate once when the API process starts
    MIGRATE_ON_STARTUP: bool = True

    # Docs Configuration
    DOCS_ENABLED: bool | None = None  # Override docs setting (None = auto based on ENV)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # ignore unrelated keys in local .env
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "dev"

    @property
    def debug_enabled(self) -> bool:
        """Debug mode is only enabled in development."""
        return self.is_development

    @property
    def high_water_mark(self) -> int:
        """Estimated byte usage above which old records are pruned."""
        return int(self.STORAGE_CEILING_BYTES * self.HIGH_WATER_RATIO)

    @property
    def effective_log_level(self) -> str:
        """Return appropriate log level based on environment."""
        if self.is_production:
            # In production, minimum INFO level (ignore DEBUG)
            return self.LOG_LEVEL if self.LOG_LEVEL.upper() != "DEBUG" else "INFO"
        return self.LOG_LEVEL

    @property
    def docs_enabled(self) -> bool:
        """Swagger/ReDoc docs enabled based on environment or override."""
        if self.DOCS_ENABLED is not None:
            return self.DOCS_ENABLED
        return self.is_development


settings = Settings()
