"""Configuration module for scrobblestats."""

from .settings import (
    ImportSettings,
    LastfmSettings,
    Settings,
    StatsSettings,
    StoreSettings,
    SyncSettings,
    get_settings,
)

__all__ = [
    "ImportSettings",
    "LastfmSettings",
    "Settings",
    "StatsSettings",
    "StoreSettings",
    "SyncSettings",
    "get_settings",
]
