"""
Configuration Management for AFACTURA

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Only operational knobs live here (storage location,
logging, defaults shown to the user). Cryptographic parameters of the
backup format are constants in afactura.backup and are NOT configurable:
a backup written with one setting must stay readable everywhere.
"""

from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from AFACTURA_* environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="AFACTURA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Storage
    store_path: Optional[Path] = Field(
        default=None,
        description="Path of the JSON record store. In-memory store when unset."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Operational log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render operational logs as JSON lines"
    )

    # Defaults
    default_user: str = Field(
        default="Admin",
        min_length=1,
        description="User name recorded in audit entries"
    )
    recent_logs_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="How many audit entries the logs viewer shows"
    )
    invoice_series: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Invoice series; defaults to '<year>A'"
    )
    backup_filename_prefix: str = Field(
        default="afactura_backup",
        min_length=1,
        description="Prefix of generated backup file names"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept standard level names."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def effective_invoice_series(self) -> str:
        """Get the configured series or the default for the current year."""
        return self.invoice_series or f"{date.today().year}A"


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return AppSettings()
