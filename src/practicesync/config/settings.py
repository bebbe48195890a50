"""Application settings loaded from environment variables and .env files.

Hey future me - every knob of the sync core lives here. Values come from
environment variables prefixed with PRACTICESYNC_ and nested sections use a
double underscore, e.g.:

    PRACTICESYNC_NOTION__API_KEY=secret_xxx
    PRACTICESYNC_NOTION__LIBRARY_DATA_SOURCE_ID=2d70...
    PRACTICESYNC_DATABASE__URL=sqlite+aiosqlite:///./cache.db
    PRACTICESYNC_LOGGING__JSON_FORMAT=true

The API key from the environment is only the fallback. A key saved through the
credential provider (stored in the cache database) wins.
"""

from functools import lru_cache

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotionSettings(BaseModel):
    """Remote document API settings."""

    api_key: SecretStr | None = None
    base_url: str = "https://api.notion.com/v1"
    api_version: str = "2022-06-28"
    page_size: int = Field(default=100, ge=1, le=100)
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)

    # Data source ids are what the query endpoint wants, database ids are the
    # parent ids for page creation. They differ in most workspaces.
    library_data_source_id: str = ""
    sessions_data_source_id: str = ""
    logs_data_source_id: str = ""
    sessions_database_id: str = ""
    logs_database_id: str = ""
    session_template_id: str | None = None

    # {"log": {"planned_minutes": "Planned (min)"}} renames a remote property
    property_overrides: dict[str, dict[str, str]] = Field(default_factory=dict)


class DatabaseSettings(BaseModel):
    """Local cache database settings."""

    url: str = "sqlite+aiosqlite:///./practicesync-cache.db"
    echo: bool = False
    lock_timeout: int = Field(default=30, ge=1)


class LoggingSettings(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    json_format: bool = False


class PracticeSettings(BaseModel):
    """Practice session behaviour."""

    tick_interval_seconds: float = Field(default=0.1, gt=0)
    default_planned_minutes: int = Field(default=5, ge=1)
    default_goal_minutes: int = Field(default=30, ge=1)
    # strftime pattern applied to the session date
    session_name_format: str = "Practice %Y-%m-%d"


class NotificationSettings(BaseModel):
    """Overtime alert delivery settings."""

    webhook_enabled: bool = False
    webhook_url: str = ""
    webhook_format: str = "generic"
    webhook_auth_header: str = ""
    webhook_timeout: float = Field(default=10.0, gt=0)


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="PRACTICESYNC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "practicesync"
    notion: NotionSettings = Field(default_factory=NotionSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    practice: PracticeSettings = Field(default_factory=PracticeSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
