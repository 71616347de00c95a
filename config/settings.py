"""
Centralized configuration using pydantic-settings.

How it works:
- Reads environment variables automatically (e.g., POSTGRES_HOST env var → Settings.POSTGRES_HOST)
- Falls back to defaults defined here if env vars are not set
- Can also read from a .env file in the project root

Every module imports `settings` from here instead of hardcoding values.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── PostgreSQL ──────────────────────────────────────────────
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "reports"
    POSTGRES_PASSWORD: str = "reports"
    POSTGRES_DB: str = "reports"

    # ── Redis ───────────────────────────────────────────────────
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # ── Pipeline ────────────────────────────────────────────────
    PIPELINE_TIME_UNIT_SECONDS: float = 1.0  # wall-clock length of one staged time unit
    FAULT_PROBABILITY: float = 0.2           # share of runs forced down the failure branch

    # ── Recovery ────────────────────────────────────────────────
    STUCK_JOB_THRESHOLD_MINUTES: float = 2.0
    RECOVER_ON_STARTUP: bool = True
    RECOVERY_DEFAULT_TOTAL_ROWS: int = 50_000

    # ── Email (MailHog in development) ──────────────────────────
    EMAIL_ENABLED: bool = True
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 1025
    SMTP_TIMEOUT_SECONDS: float = 10.0
    MAIL_FROM: str = "Ira Analytics <notifications@ira.local>"

    # ── Exports ─────────────────────────────────────────────────
    DOWNLOAD_ROW_LIMIT: int = 10_000
    DEFAULT_DOMAIN: str = "ecommerce"

    # ── App ─────────────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        """Async connection string for the API and pipeline (uses asyncpg driver)."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def sync_database_url(self) -> str:
        """Sync connection string for maintenance scripts (uses psycopg2 driver)."""
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def stuck_job_threshold_seconds(self) -> float:
        return self.STUCK_JOB_THRESHOLD_MINUTES * 60

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton: import this everywhere
settings = Settings()
