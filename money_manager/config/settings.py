"""
Configuration Management for Money Manager

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The database file, backup locations and display preferences are the only
knobs; everything is validated when first accessed.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Embedded SQLite database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONEY_MANAGER_DB_",
        extra="ignore"
    )

    path: str = Field(
        default="money_management.db",
        description="Path to the SQLite database file (':memory:' for in-memory)"
    )
    timeout_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=120.0,
        description="How long SQLite waits on a locked database"
    )

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Reject an empty database path."""
        if not v.strip():
            raise ValueError("Database path cannot be empty")
        return v.strip()


class BackupSettings(BaseSettings):
    """Backup and restore configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONEY_MANAGER_BACKUP_",
        extra="ignore"
    )

    directory: str = Field(
        default="backups",
        description="Directory where backup files are written before sharing"
    )
    share_directory: str = Field(
        default="shared_backups",
        description="Outbox used by the default directory share target"
    )
    format_version: str = Field(
        default="1.0.0",
        pattern=r"^\d+\.\d+\.\d+$",
        description="Version written into exported backup documents"
    )

    @property
    def directory_path(self) -> Path:
        return Path(self.directory)

    @property
    def share_directory_path(self) -> Path:
        return Path(self.share_directory)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
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
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )

    # Display
    currency_symbol: str = Field(
        default="₹",
        max_length=5,
        description="Symbol used when formatting amounts"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def backup(self) -> BackupSettings:
        return BackupSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("database", "backup", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
