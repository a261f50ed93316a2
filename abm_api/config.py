from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Info
    PROJECT_NAME: str = "ABM Pages API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/abm_pages.db",
        description="Database URL (SQLite or PostgreSQL)"
    )
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Database max overflow connections")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Database pool timeout in seconds")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time in seconds")

    # Public pages
    APP_URL: str = Field(default="", description="Public base URL used to build landing page links")

    # API keys
    API_KEY_PREFIX: str = Field(default="trig_", description="Recognizable prefix of every raw API key")
    API_KEY_DISPLAY_LENGTH: int = Field(default=10, description="Characters of the raw key kept in clear for display")

    @field_validator('API_KEY_PREFIX')
    @classmethod
    def validate_api_key_prefix(cls, v: str) -> str:
        if not v or any(c.isspace() for c in v):
            raise ValueError('API_KEY_PREFIX must be a non-empty string without whitespace')
        return v

    # Voice provider webhooks
    ELEVENLABS_WEBHOOK_SECRET: str = Field(default="", description="Shared secret for ElevenLabs-Signature verification")
    WEBHOOK_TOLERANCE_SECONDS: int = Field(default=1800, description="Accepted clock skew for signed webhooks")
    WEBHOOK_ALLOW_UNSIGNED: Optional[bool] = Field(
        default=None,
        description="Accept unsigned webhooks when no secret is set (defaults to true only in development/test)"
    )

    # Security - CORS
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins"
    )
    MAX_REQUEST_SIZE: int = Field(default=5242880, description="Max request body size in bytes (default 5MB)")

    # Listing
    LIST_DEFAULT_LIMIT: int = Field(default=50, description="Default page size for call and lead listings")
    LIST_MAX_LIMIT: int = Field(default=100, description="Maximum page size for call and lead listings")

    # Server Configuration
    WORKERS: int = Field(default=4, description="Number of Uvicorn workers")
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    LOG_DIR: str = Field(default="./logs", description="Directory for log files")
    LOG_RETENTION_DAYS: int = Field(default=30, description="Number of days to keep log files")
    LOG_MASK_SENSITIVE: bool = Field(default=True, description="Enable sensitive data masking in logs")
    LOG_ENABLE_REQUEST_LOGGING: bool = Field(default=True, description="Enable HTTP request/response logging")

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable rate limiting")
    RATE_LIMIT_DEFAULT: str = Field(default="100/minute", description="Default rate limit")
    RATE_LIMIT_CAPTURE: str = Field(default="10/minute", description="Rate limit for public email capture")
    RATE_LIMIT_STORAGE_URI: str = Field(default="memory://", description="Rate limit storage URI")

    def get_log_level(self) -> str:
        """Get log level based on environment."""
        if self.ENVIRONMENT.lower() in ["development", "dev", "test"]:
            return "DEBUG"
        return self.LOG_LEVEL.upper()

    def allow_unsigned_webhooks(self) -> bool:
        """Whether webhooks may be accepted unverified when no secret is configured."""
        if self.WEBHOOK_ALLOW_UNSIGNED is not None:
            return self.WEBHOOK_ALLOW_UNSIGNED
        return self.ENVIRONMENT.lower() in ["development", "dev", "test"]

    def page_url(self, slug: str) -> str:
        """Public URL of a landing page."""
        return f"{self.APP_URL.rstrip('/')}/{slug}"


settings = Settings()
