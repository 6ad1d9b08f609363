"""Configuration package."""

from afactura.config.logging_config import configure_logging
from afactura.config.settings import (
    AppSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "configure_logging",
    "get_settings",
]
