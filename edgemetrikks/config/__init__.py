"""Configuration module for edgemetrikks."""

from edgemetrikks.config.settings import (
    BatchSettings,
    DatabaseSettings,
    EnrichmentSettings,
    GeoIPSettings,
    Settings,
    TrinoSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "BatchSettings",
    "DatabaseSettings",
    "EnrichmentSettings",
    "GeoIPSettings",
    "TrinoSettings",
]
