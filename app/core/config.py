# python
# app/core/config.py
"""Configuration settings for the Assistant Chat API.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MB = 1024 * 1024


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class SearchDepthEnum(str, Enum):
    basic = "basic"
    advanced = "advanced"


DEFAULT_ALLOWED_UPLOAD_TYPES = [
    "text/plain",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/csv",
    "application/json",
    "text/xml",
    "application/xml",
    "text/html",
    "text/markdown",
]


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Assistant Chat API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Assistant Service (OpenAI Assistants API) =====
    openai_api_key: str | None = Field(default=None, description="Assistant service API key")
    openai_organization: str | None = Field(default=None, description="Assistant service organization id")
    openai_assistant_id: str | None = Field(default=None, description="Assistant id used for runs")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", description="Assistant service base URL"
    )
    assistant_request_timeout: float = Field(
        default=60.0, description="Per-request timeout for assistant service calls in seconds"
    )

    # ===== Run Poller =====
    run_poll_interval_seconds: float = Field(default=1.0, description="Seconds between run status polls")
    run_poll_max_attempts: int = Field(default=60, description="Maximum number of run status polls")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    db_pool_size: int = Field(default=20, description="Database connection pool size")
    db_max_overflow: int = Field(default=0, description="Database max overflow connections")

    # Test database URL
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Web Search (Tavily) =====
    tavily_api_key: str | None = Field(default=None, description="Tavily search API key")
    tavily_api_url: str = Field(default="https://api.tavily.com", description="Tavily API base URL")
    search_max_results: int = Field(default=5, description="Maximum search results per query")
    search_depth: SearchDepthEnum = Field(default=SearchDepthEnum.basic, description="Tavily search depth")
    search_request_timeout: float = Field(default=30.0, description="Search request timeout in seconds")

    # ===== Blob Storage =====
    blob_read_write_token: str | None = Field(default=None, description="Blob storage read/write token")
    blob_api_url: str = Field(
        default="https://blob.vercel-storage.com", description="Blob storage API base URL"
    )

    # ===== Sharing =====
    public_base_url: str = Field(
        default="http://localhost:3000", description="Public base URL used to build share links"
    )
    share_min_expiry_days: int = Field(default=1, description="Minimum share lifetime in days")
    share_max_expiry_days: int = Field(default=30, description="Maximum share lifetime in days")

    # ===== Uploads =====
    max_upload_size: int = Field(default=512 * MB, description="Maximum upload size in bytes (512MB)")
    allowed_upload_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_UPLOAD_TYPES),
        description="Content types accepted by the upload endpoint",
    )
    allowed_upload_extensions: list[str] = Field(
        default_factory=lambda: [".md"],
        description="Extensions accepted regardless of the reported content type",
    )

    # ===== Storage Janitor =====
    storage_limit_bytes: int = Field(default=500 * MB, description="Blob storage quota in bytes")
    storage_cleanup_threshold_bytes: int = Field(
        default=400 * MB, description="Total size above which cleanup runs"
    )
    storage_cleanup_target_bytes: int = Field(
        default=300 * MB, description="Total size cleanup tries to reach"
    )
    storage_retention_days: int = Field(
        default=7, description="Files accessed within this many days are never evicted"
    )
    storage_cleanup_interval_minutes: int = Field(
        default=60, description="Minutes between scheduled cleanup runs"
    )

    # ===== Background Tasks (Celery) =====
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1", description="Celery broker URL"
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2", description="Celery result backend"
    )

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(self.allowed_origins, str):
            return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return self.allowed_origins if isinstance(self.allowed_origins, list) else []

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.simple, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def has_assistant_configured(self) -> bool:
        return bool(self.openai_api_key and self.openai_assistant_id)

    @property
    def has_web_search(self) -> bool:
        return bool(self.tavily_api_key)

    @property
    def has_blob_storage(self) -> bool:
        return bool(self.blob_read_write_token)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            if lv in ["test"]:
                return "testing"
        return v

    @field_validator("max_upload_size")
    @classmethod
    def validate_upload_size(cls, v):
        if v > 512 * MB:
            raise ValueError("Maximum upload size cannot exceed 512MB")
        return v

    @field_validator("allowed_upload_extensions")
    @classmethod
    def normalize_extensions(cls, v):
        return [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]

    @field_validator("run_poll_max_attempts")
    @classmethod
    def validate_poll_attempts(cls, v):
        if v < 1:
            raise ValueError("Run poll attempts must be at least 1")
        return v

    @model_validator(mode="after")
    def validate_storage_thresholds(self):
        if not (
            self.storage_cleanup_target_bytes
            < self.storage_cleanup_threshold_bytes
            <= self.storage_limit_bytes
        ):
            raise ValueError("Storage thresholds must satisfy target < threshold <= limit")
        if not 1 <= self.share_min_expiry_days <= self.share_max_expiry_days:
            raise ValueError("Share expiry bounds must satisfy 1 <= min <= max")
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if settings.is_production and not settings.openai_api_key:
            errors.append("OPENAI_API_KEY is required in production")
        if settings.is_production and not settings.openai_assistant_id:
            errors.append("OPENAI_ASSISTANT_ID is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "assistant_configured": settings.has_assistant_configured,
            "web_search_enabled": settings.has_web_search,
            "blob_storage_enabled": settings.has_blob_storage,
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
        "public_base_url": settings.public_base_url,
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
    "SearchDepthEnum",
]
