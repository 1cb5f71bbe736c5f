from typing import Any, ClassVar, FrozenSet

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./docrev.db"

    # Database pool (applies to client/server DBs like Postgres; SQLite uses NullPool)
    DB_POOL_PRE_PING: bool = True
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT_SECONDS: int = 30
    DB_POOL_RECYCLE_SECONDS: int = 1800

    # SQLite only: how long a writer waits for the database lock before failing.
    DB_SQLITE_BUSY_TIMEOUT_SECONDS: float = 5.0

    # Database transaction isolation
    # Applied for Postgres connections only. The conditional UPDATE relies on
    # row-level locking, which READ COMMITTED already provides.
    DB_POSTGRES_ISOLATION_LEVEL: str = "READ COMMITTED"

    # Create the documents table on Database.open(). Dev/test only; other
    # environments are expected to run the Alembic migrations.
    DB_AUTO_CREATE_SCHEMA: bool = False

    # Application
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Environment
    # Used for guardrails (e.g. schema auto-creation). Suggested values: dev|staging|prod.
    ENV: str = "dev"

    # Caller-side conflict retry (docrev.core.documents.retry)
    CONFLICT_RETRY_ATTEMPTS: int = 3
    # Base backoff delay (exponential with jitter).
    CONFLICT_RETRY_BASE_DELAY_MS: int = 20
    # Cap the exponential backoff to avoid unbounded latency.
    CONFLICT_RETRY_MAX_DELAY_MS: int = 250

    # --- Guardrails ---
    _SAFE_ENVS: ClassVar[FrozenSet[str]] = frozenset({"dev", "development", "test", "testing"})

    def model_post_init(self, __context: Any) -> None:
        # Runs on every Settings() instantiation (including module-level `settings = Settings()`).
        self._guardrail_auto_create_schema()
        self._guardrail_retry_policy()

    def _guardrail_auto_create_schema(self) -> None:
        """Fail-fast when DB_AUTO_CREATE_SCHEMA is enabled outside dev/test."""
        if not self.DB_AUTO_CREATE_SCHEMA:
            return
        env = (self.ENV or "").strip().lower()
        if env in self._SAFE_ENVS:
            return
        raise RuntimeError(
            "DB_AUTO_CREATE_SCHEMA must not be enabled outside dev/test. "
            f"Got ENV={self.ENV!r}. "
            "Run the Alembic migrations instead, or run with ENV=dev/test."
        )

    def _guardrail_retry_policy(self) -> None:
        problems: list[str] = []
        if self.CONFLICT_RETRY_ATTEMPTS < 1:
            problems.append("CONFLICT_RETRY_ATTEMPTS")
        if self.CONFLICT_RETRY_BASE_DELAY_MS < 0:
            problems.append("CONFLICT_RETRY_BASE_DELAY_MS")
        if self.CONFLICT_RETRY_MAX_DELAY_MS < self.CONFLICT_RETRY_BASE_DELAY_MS:
            problems.append("CONFLICT_RETRY_MAX_DELAY_MS")

        if problems:
            fields = ", ".join(problems)
            raise RuntimeError(
                f"Invalid conflict retry settings: {fields}. "
                "Attempts must be >= 1 and 0 <= base delay <= max delay."
            )


settings = Settings()


def get_settings() -> Settings:
    """Return the global settings instance.

    Provided as a callable for test mocking convenience.
    """
    return settings
