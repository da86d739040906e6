"""Application configuration loaded from environment variables."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed settings exposed via dependency injection throughout the app."""

    # Read .env with BOM tolerance; case-sensitive keys
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=True,
    )

    APP_NAME: str = "PetitionPower API"
    ENV: str = "dev"  # dev | staging | prod
    DEBUG: bool = True

    # CORS
    CORS_ALLOWED_ORIGINS: list[str] = Field(default_factory=list)

    # DB
    DB_HOST: str = "127.0.0.1"
    DB_PORT: int = 3306
    DB_USER: str = "appadmin"
    DB_PASSWORD: str = ""  # set via env/.env
    DB_NAME: str = "petitions"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_ISOLATION_LEVEL: str = "READ COMMITTED"
    # Full SQLAlchemy URL; when set it replaces the DB_* composition above.
    DATABASE_URL_OVERRIDE: str | None = None

    # Upper bound for a single store round-trip.
    STORE_OP_TIMEOUT_SEC: float = 10.0
    # atomic: unique constraint + single UPDATE ... SET count = count + 1
    # read_increment_write: fresh read, compute, overwrite both fields
    SIGN_COUNTER_MODE: Literal["atomic", "read_increment_write"] = "atomic"

    # Listing / presentation
    CAMPAIGN_PAGE_SIZE: int = 6
    CAMPAIGN_PAGE_MAX: int = 50
    FEATURED_CAMPAIGNS_COUNT: int = 3
    RELATED_CAMPAIGNS_COUNT: int = 3
    SIGNATURES_PREVIEW_LIMIT: int = 10
    MIN_TARGET_SIGNATURES: int = 10
    IDENTIFIER_PREFIX: str = "anon_"

    # Rate limits, see app.core.rate_limit.limiter for syntax.
    RATE_LIMIT_ENABLED: bool = True
    SIGN_RATE: str = "30/minute"
    CREATE_RATE: str = "5/minute"
    CONTACT_RATE: str = "5/minute"

    # Maximum allowed request body.
    MAX_UPLOAD_BYTES: int = 1 * 1024 * 1024  # 1 MB

    @property
    def atomic_counters(self) -> bool:
        return self.SIGN_COUNTER_MODE == "atomic"

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4"
        )


settings = Settings()
