# python
# app/core/config.py
"""Configuration settings for the ANETI messaging service.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="ANETI Messaging API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Security Settings =====
    algorithm: str = Field(default="HS256", description="JWT algorithm")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    db_pool_size: int = Field(default=20, description="Database connection pool size")
    db_max_overflow: int = Field(default=0, description="Database max overflow connections")

    # Test database URL
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Authentication (Clerk) =====
    clerk_secret_key: str | None = Field(default=None, description="Clerk secret key")

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return _split_csv(self.allowed_origins)

    # ===== Messaging =====
    message_max_length: int = Field(default=10000, description="Maximum message length")
    group_name_max_length: int = Field(default=255, description="Maximum group name length")
    free_plan_names: str = Field(
        default="Público",
        description="Membership plans that may not send messages (comma-separated)",
    )
    messages_page_size: int = Field(default=50, description="Default messages per listing")
    messages_max_page_size: int = Field(default=200, description="Upper bound for message listings")

    @property
    def free_plan_names_list(self) -> list[str]:
        return [name.casefold() for name in _split_csv(self.free_plan_names)]

    # ===== Notifications =====
    notifications_page_size: int = Field(default=50, description="Default notifications per listing")
    notification_dedupe_window_seconds: int = Field(
        default=0, description="Collapse identical notifications inside this window (0 disables)"
    )

    # ===== Push channel =====
    event_stream_heartbeat_interval: float = Field(
        default=15.0, description="Seconds between SSE heartbeat comments"
    )
    event_queue_max_size: int = Field(default=100, description="Pending events kept per subscriber")

    # ===== Polling client =====
    api_base_url: str = Field(default="http://127.0.0.1:8000", description="API base URL for clients")
    client_request_timeout: float = Field(default=10.0, description="Client request timeout in seconds")
    poll_conversations_interval: float = Field(default=5.0, description="Conversation list poll interval")
    poll_messages_interval: float = Field(default=2.0, description="Active conversation poll interval")
    poll_message_bell_interval: float = Field(default=15.0, description="Message bell poll interval")
    poll_notification_count_interval: float = Field(
        default=30.0, description="Unread notification count poll interval"
    )

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.json, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

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
            return lv
        return v

    @field_validator("message_max_length")
    @classmethod
    def validate_message_max_length(cls, v):
        if v > 50000:
            raise ValueError("Maximum message length cannot exceed 50,000 characters")
        if v < 1:
            raise ValueError("Maximum message length must be positive")
        return v

    @field_validator(
        "poll_conversations_interval",
        "poll_messages_interval",
        "poll_message_bell_interval",
        "poll_notification_count_interval",
        "client_request_timeout",
        "event_stream_heartbeat_interval",
    )
    @classmethod
    def validate_positive_interval(cls, v):
        if v <= 0:
            raise ValueError("Intervals and timeouts must be positive")
        return v

    @model_validator(mode="after")
    def set_computed_fields(self):
        if not self.test_database_url and self.database_url and "neondb" in self.database_url:
            self.test_database_url = self.database_url.replace("neondb", "neondb_test")
        if self.messages_page_size > self.messages_max_page_size:
            self.messages_page_size = self.messages_max_page_size
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if settings.is_production and not settings.clerk_secret_key:
            errors.append("CLERK_SECRET_KEY is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "notification_dedupe": settings.notification_dedupe_window_seconds > 0,
            "free_plans": settings.free_plan_names_list,
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
        "auth_configured": bool(settings.clerk_secret_key),
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
]
