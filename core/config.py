from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Course Quiz API"
    APP_VERSION: str = "1.0.0"

    # Database
    DATABASE_URL: str = Field(..., description="Async database connection string (postgresql+asyncpg://...)")
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = Field("redis://localhost:6379/0")
    ATTEMPT_LOCK_TIMEOUT_SECONDS: int = 10

    # Auth
    SECRET_KEY: str = Field(..., description="Shared secret used to sign user tokens")
    TOKEN_TTL_SECONDS: int = 2592000  # 30 days

    # Quiz Settings
    DEFAULT_PASSING_SCORE: int = 60
    INSTRUCTOR_ATTEMPTS_LIMIT: int = 100

    # Expiry sweeper
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 60
    EXPIRY_SWEEP_JOB_ID: str = "expired_attempts_sweep"
    SCHEDULER_TIMEZONE: str = "UTC"

    # Environment
    ENV: str = "production"  # development, staging, production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

settings = Settings()
