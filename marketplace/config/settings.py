"""
Marketplace User Activity Service
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type
safety. Every section reads its own prefix from the environment or `.env`.
"""

from functools import lru_cache
from typing import Optional, List
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="grocery_marketplace", description="Database name")
    user: str = Field(default="marketplace", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, description="Full async database URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL - uses POSTGRES_URL if set, otherwise asyncpg from host/port"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class SecuritySettings(BaseSettings):
    """HTTP surface security configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class ActivitySettings(BaseSettings):
    """User activity aggregation configuration"""

    model_config = SettingsConfigDict(env_prefix="ACTIVITY_")

    # Order-status policy
    revenue_statuses: List[str] = Field(
        default=["paid", "shipped", "completed"],
        description="Order statuses whose items count towards seller revenue",
    )
    pending_statuses: List[str] = Field(
        default=["pending"],
        description="Order statuses counted as pending (awaiting payment)",
    )
    completed_statuses: List[str] = Field(
        default=["completed"],
        description="Order statuses counted as completed",
    )

    # Placeholders for broken references
    unknown_product_name: str = Field(default="Unknown Product", description="Name shown for missing products")
    unknown_buyer_name: str = Field(default="Unknown Buyer", description="Name shown for missing buyers")

    # Pagination
    max_page_size: int = Field(default=100, description="Upper bound for the seller orders page size")

    # Authorization
    enforce_ownership: bool = Field(
        default=False,
        description="Require the caller to own the requested subject (or be an admin)",
    )
    subject_id_header: str = Field(default="X-Subject-Id", description="Header carrying the verified caller id")
    subject_role_header: str = Field(default="X-Subject-Role", description="Header carrying the verified caller role")
    admin_role: str = Field(default="admin", description="Role allowed to read any subject")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="marketplace-activity", description="Application name")
    app_env: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    activity: ActivitySettings = Field(default_factory=ActivitySettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
