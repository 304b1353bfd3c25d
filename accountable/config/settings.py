"""
Configuration Management for AccountAble

Settings come from environment variables (and an optional .env file)
through pydantic-settings, one class per concern:

    DATABASE_*  -> DatabaseSettings
    AUDIT_*     -> AuditSettings
    (no prefix) -> AppSettings

DESIGN DECISION: The audit core reads nothing from the environment
outside this module.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite:///accountable.db",
        description="SQLAlchemy database URL"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging only)"
    )
    pool_pre_ping: bool = Field(
        default=True,
        description="Test connections before handing them out"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """A URL needs at least a dialect and a separator."""
        if "://" not in v:
            raise ValueError(f"Not a database URL: {v!r}")
        return v

    @property
    def is_in_memory_sqlite(self) -> bool:
        return self.url in ("sqlite://", "sqlite:///:memory:")


class AuditSettings(BaseSettings):
    """Audit trail listing and verification display settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    page_size: int = Field(
        default=10,
        ge=1,
        description="Entries per page when the caller does not choose"
    )
    max_page_size: int = Field(
        default=100,
        ge=1,
        description="Upper bound for a caller-chosen page size"
    )
    recent_verifications_limit: int = Field(
        default=5,
        ge=1,
        description="How many successful verifications the summary shows"
    )
    explorer_limit: int = Field(
        default=10,
        ge=1,
        description="How many token-bearing records the explorer lists"
    )
    token_preview_length: int = Field(
        default=10,
        ge=4,
        le=66,
        description="Characters of an integrity token shown in list views"
    )

    @model_validator(mode="after")
    def validate_page_bounds(self) -> "AuditSettings":
        if self.page_size > self.max_page_size:
            raise ValueError("page_size cannot exceed max_page_size")
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Environment name, debug flag and operational log level.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the operational log"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """Root settings container; each concern is read on access."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Built on access, so a broken DATABASE_URL does not block AUDIT_* reads

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def audit(self) -> AuditSettings:
        return AuditSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings container.

    Cached; tests call get_settings.cache_clear() after changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Startup check: try to load every settings group.

    Returns {group: ok} plus "{group}_error" for each group that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("database", "audit", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
