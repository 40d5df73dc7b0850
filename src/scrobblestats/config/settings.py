"""Application settings loaded from environment variables.

Hey future me - there are NO module-level credential constants anywhere!
Build one Settings object at startup, call require() for the groups the
command needs, then pass the object (or its groups) into constructors.
Every env var name below is the public contract of the CLI and the API.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from scrobblestats.domain.exceptions import ConfigurationError

_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)

ConfigGroup = Literal["store", "lastfm"]


class StoreSettings(BaseSettings):
    """Where scrobbles live.

    Either a hosted Cloudflare D1 database (account + database id + token) or
    a local SQLAlchemy URL. DATABASE_URL wins when both are present.
    """

    model_config = _ENV_CONFIG

    account_id: str | None = Field(default=None, validation_alias="CLOUDFLARE_ACCOUNT_ID")
    database_id: str | None = Field(default=None, validation_alias="D1_DATABASE_ID")
    api_token: str | None = Field(default=None, validation_alias="CLOUDFLARE_API_TOKEN")
    api_base_url: str = Field(
        default="https://api.cloudflare.com/client/v4", validation_alias="D1_API_BASE_URL"
    )
    database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
    timeout_seconds: float = Field(default=30.0, validation_alias="STORE_TIMEOUT_SECONDS")

    @property
    def uses_local_database(self) -> bool:
        """True when a local SQLAlchemy URL is configured."""
        return bool(self.database_url)

    def missing_names(self) -> list[str]:
        """Env var names that must still be set for this store to work."""
        if self.uses_local_database:
            return []
        required = {
            "CLOUDFLARE_ACCOUNT_ID": self.account_id,
            "D1_DATABASE_ID": self.database_id,
            "CLOUDFLARE_API_TOKEN": self.api_token,
        }
        return [name for name, value in required.items() if not value]


class LastfmSettings(BaseSettings):
    """Last.fm API access for the scrobble source."""

    model_config = _ENV_CONFIG

    api_key: str | None = Field(default=None, validation_alias="LASTFM_API_KEY")
    username: str | None = Field(default=None, validation_alias="LASTFM_USERNAME")
    api_url: str = Field(
        default="https://ws.audioscrobbler.com/2.0/", validation_alias="LASTFM_API_URL"
    )
    timeout_seconds: float = Field(default=30.0, validation_alias="LASTFM_TIMEOUT_SECONDS")

    def missing_names(self) -> list[str]:
        """Env var names that must still be set for Last.fm calls."""
        required = {
            "LASTFM_API_KEY": self.api_key,
            "LASTFM_USERNAME": self.username,
        }
        return [name for name, value in required.items() if not value]


class SyncSettings(BaseSettings):
    """Knobs for the incremental Last.fm sync."""

    model_config = _ENV_CONFIG

    max_pages: int = Field(default=10, ge=1, validation_alias="SYNC_MAX_PAGES")
    page_size: int = Field(default=200, ge=1, le=200, validation_alias="SYNC_PAGE_SIZE")
    page_delay_seconds: float = Field(
        default=0.25, ge=0, validation_alias="SYNC_PAGE_DELAY_SECONDS"
    )
    incremental: bool = Field(default=True, validation_alias="SYNC_INCREMENTAL")
    stale_after_seconds: int = Field(
        default=3600, ge=0, validation_alias="SYNC_STALE_AFTER_SECONDS"
    )


class StatsSettings(BaseSettings):
    """Windows and limits for the statistics payload."""

    model_config = _ENV_CONFIG

    window_days: int = Field(default=30, ge=1, validation_alias="STATS_WINDOW_DAYS")
    daily_window_days: int = Field(
        default=90, ge=1, validation_alias="STATS_DAILY_WINDOW_DAYS"
    )
    top_limit: int = Field(default=10, ge=1, validation_alias="STATS_TOP_LIMIT")
    recent_limit: int = Field(default=20, ge=1, validation_alias="STATS_RECENT_LIMIT")
    cache_max_age: int = Field(default=300, ge=0, validation_alias="STATS_CACHE_MAX_AGE")


class ImportSettings(BaseSettings):
    """CSV import behaviour."""

    model_config = _ENV_CONFIG

    delimiter: str = Field(default=",", min_length=1, max_length=1, validation_alias="CSV_DELIMITER")
    loose_timestamp_detection: bool = Field(
        default=True, validation_alias="CSV_LOOSE_TIMESTAMP_DETECTION"
    )
    progress_every: int = Field(default=100, ge=1, validation_alias="CSV_PROGRESS_EVERY")


class Settings(BaseSettings):
    """Top-level settings object handed to every service."""

    model_config = _ENV_CONFIG

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")

    store: StoreSettings = Field(default_factory=StoreSettings)
    lastfm: LastfmSettings = Field(default_factory=LastfmSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    stats: StatsSettings = Field(default_factory=StatsSettings)
    imports: ImportSettings = Field(default_factory=ImportSettings)

    def require(self, *groups: ConfigGroup) -> None:
        """Validate that every group a command needs is fully configured.

        Call this ONCE, before any network or database I/O.

        Args:
            groups: Config groups the caller depends on ("store", "lastfm")

        Raises:
            ConfigurationError: Listing every missing env var name
        """
        missing: list[str] = []
        if "store" in groups:
            missing.extend(self.store.missing_names())
        if "lastfm" in groups:
            missing.extend(self.lastfm.missing_names())
        if missing:
            raise ConfigurationError(missing)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached after first call)."""
    return Settings()
