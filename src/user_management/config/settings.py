from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import to_uppercase, to_lowercase, split_csv


class Settings(BaseSettings):
    """
    Application settings loaded from environment (and an optional `.env` file).
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database configuration
    POSTGRES_DRIVER: str = "asyncpg"
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "users"

    # Full SQLAlchemy URL; when set it wins over the POSTGRES_* parts
    DATABASE_DSN: str | None = None

    # Connection pool (every store call must be bounded)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_TIMEOUT: float = 15.0
    DB_COMMAND_TIMEOUT: float = 10.0
    HEALTH_CHECK_TIMEOUT: float = 2.0

    # SQLAlchemy
    SQLALCHEMY_ECHO: bool = False
    # Create missing tables at startup (local runs; production uses migrations)
    DB_CREATE_SCHEMA: bool = False

    # HTTP
    HTTP_HOST: str = "127.0.0.1"
    HTTP_PORT: int = 8080
    CORS_ORIGINS: str = ""  # comma separated
    # Requests per second per client address on /api/v1 (health excluded); 0 disables
    RATE_LIMIT: int = 100

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/user-management")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # Queue-backed logging
    LOG_USE_QUEUE: bool = False
    LOG_QUEUE_MAX_SIZE: int = 0
    LOG_QUEUE_BLOCKING: bool = False
    LOG_QUEUE_DROP_WARNING_THRESHOLD: int = 100

    # --- Derived settings ---
    @property
    def DATABASE_URL(self) -> str:
        """
        Return the SQLAlchemy URL of the record store.

        `DATABASE_DSN` is used verbatim when provided (CI, tests, sqlite);
        otherwise the URL is assembled from the POSTGRES_* parts.
        """
        if self.DATABASE_DSN:
            return self.DATABASE_DSN

        return (
            f"postgresql+{self.POSTGRES_DRIVER}://"
            f"{self.POSTGRES_USERNAME}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )

    @property
    def CORS_ORIGIN_LIST(self) -> list[str]:
        return split_csv(self.CORS_ORIGINS)

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize LOG_LEVEL to uppercase before the Literal check runs, so
        `LOG_LEVEL=debug` is accepted.
        """
        return to_uppercase(v)

    @field_validator("LOG_FORMAT", mode="before")
    @classmethod
    def normalize_log_format(cls, v: str | None) -> str | None:
        return to_lowercase(v)

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def pool_size_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("DB_POOL_SIZE must be greater than 0")
        return v

    @field_validator("RATE_LIMIT")
    @classmethod
    def rate_limit_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("RATE_LIMIT must be 0 (disabled) or positive")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# get_settings() takes no arguments and always returns the same settings,
# so it is cached for the lifetime of the process.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
