"""Configuration module for practicesync."""

from .schema import (
    LIBRARY_SCHEMA,
    LOG_SCHEMA,
    SESSION_SCHEMA,
    CollectionSchema,
    PropertyKind,
    PropertyMapping,
)
from .settings import (
    DatabaseSettings,
    LoggingSettings,
    NotificationSettings,
    NotionSettings,
    PracticeSettings,
    Settings,
    get_settings,
)

__all__ = [
    "CollectionSchema",
    "DatabaseSettings",
    "LIBRARY_SCHEMA",
    "LOG_SCHEMA",
    "LoggingSettings",
    "NotificationSettings",
    "NotionSettings",
    "PracticeSettings",
    "PropertyKind",
    "PropertyMapping",
    "SESSION_SCHEMA",
    "Settings",
    "get_settings",
]
