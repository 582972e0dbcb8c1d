"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./darta_chalani.db"
    # Applied to PostgreSQL connections only (SQLite serializes writers itself)
    DATABASE_ISOLATION_LEVEL: str = "SERIALIZABLE"

    # Numbering
    CURRENT_FISCAL_YEAR: str = "2082/83"  # Used until a counter exists for the scope
    ALLOCATION_TTL_MINUTES: int = 5  # Provisional allocations expire after this

    # Mutation runner (transient storage contention only)
    MUTATION_MAX_RETRIES: int = 3
    MUTATION_RETRY_BACKOFF_MS: int = 25

    # Rate limiting (requests per minute per client, 0 disables)
    RATE_LIMIT_API: int = 120

    # Actor identity header (set by the upstream auth gateway)
    ACTOR_HEADER: str = "X-Actor-Id"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
