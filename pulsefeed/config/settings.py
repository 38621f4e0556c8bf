"""
PulseFeed Configuration System
==============================

Configuration management with environment variables and Pydantic models.
Environment variables (prefix PULSEFEED_, nested delimiter __) override
Field defaults.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..database.models import FamilyConfig, FeedFormat, FeedSource, RecordKind
from ..utils.exceptions import ConfigurationError, ErrorCode

logger = logging.getLogger(__name__)


class DataMode(str, Enum):
    """Record store operating modes."""
    MOCK = "mock"
    SNAPSHOT = "snapshot"
    LIVE = "live"


class ParserStrategy(str, Enum):
    """Available feed parser implementations."""
    TAG_SCAN = "tag_scan"
    FEEDPARSER = "feedparser"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreSettings(BaseModel):
    """Record store configuration."""
    data_mode: DataMode = Field(default=DataMode.MOCK, description="mock, snapshot or live")
    database_path: Optional[str] = Field(default=None, description="SQLite database for live mode")
    snapshot_path: str = Field(default="data/feed-snapshot.json", description="Snapshot fixture file")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")
    recovery_timeout_seconds: float = Field(default=60.0, ge=0.0, description="Seconds degraded before probing the backend")
    max_query_items: int = Field(default=100, ge=1, le=10000, description="Default query result cap")

    @field_validator("data_mode", mode="before")
    @classmethod
    def parse_data_mode(cls, v):
        """Case-insensitive; unknown modes fall back to mock."""
        if isinstance(v, DataMode):
            return v
        value = str(v or "").strip().lower()
        try:
            return DataMode(value)
        except ValueError:
            logger.warning(f"Unknown data mode '{v}', falling back to mock data")
            return DataMode.MOCK


class IngestionSettings(BaseModel):
    """Feed ingestion configuration."""
    request_timeout: int = Field(default=30, ge=1, le=300, description="Feed fetch timeout in seconds")
    description_max_length: int = Field(default=500, ge=50, le=10000, description="Max description length")
    video_max_age_days: int = Field(default=365, ge=1, description="Default video recency cutoff")
    warmup_days_back: int = Field(default=180, ge=1, description="Backfill window on first run")
    video_host: str = Field(default="www.youtube.com", description="Host used to build video links")
    video_default_author: str = Field(default="Microsoft", description="Author when a video feed omits it")
    parser_strategy: ParserStrategy = Field(default=ParserStrategy.TAG_SCAN, description="Feed parser implementation")
    user_agent: str = Field(default="PulseFeed/1.0", description="User-Agent for feed requests")


def _default_updates() -> FamilyConfig:
    return FamilyConfig(
        name="updates",
        kind=RecordKind.UPDATE,
        format_hint=FeedFormat.RSS,
        sources=[
            FeedSource(
                name="Azure Updates",
                url="https://azurecomcdn.azureedge.net/en-us/updates/feed/",
            ),
        ],
    )


def _default_blogs() -> FamilyConfig:
    return FamilyConfig(
        name="blogs",
        kind=RecordKind.BLOG,
        format_hint=FeedFormat.RSS,
        sources=[
            FeedSource(
                name="Azure Blog",
                url="https://azure.microsoft.com/en-us/blog/feed/",
                categories=["Azure", "Microsoft"],
            ),
            FeedSource(
                name="Azure SDK Blog",
                url="https://devblogs.microsoft.com/azure-sdk/feed/",
                categories=["Azure", "SDK", "Development"],
            ),
            FeedSource(
                name="Azure Tech Community",
                url="https://techcommunity.microsoft.com/plugins/custom/microsoft/o365/custom-blog-rss?board=AzureBlog",
                categories=["Azure", "Community"],
            ),
        ],
    )


def _default_videos() -> FamilyConfig:
    return FamilyConfig(
        name="videos",
        kind=RecordKind.VIDEO,
        format_hint=FeedFormat.ATOM,
        sources=[
            FeedSource(
                name="Microsoft Ignite",
                url="https://www.youtube.com/feeds/videos.xml?channel_id=UCrhJmfAGQ5K81XQ8_od1iTg",
                categories=["Ignite", "Azure", "Cloud", "AI"],
            ),
            FeedSource(
                name="Microsoft Build",
                url="https://www.youtube.com/feeds/videos.xml?channel_id=UCrhJmfAGQ5K81XQ8_od1iTg",
                categories=["Build", "Azure", "Developer", "Innovation"],
            ),
        ],
    )


class FeedsSettings(BaseModel):
    """Configured feed families."""
    updates: FamilyConfig = Field(default_factory=_default_updates)
    blogs: FamilyConfig = Field(default_factory=_default_blogs)
    videos: FamilyConfig = Field(default_factory=_default_videos)

    def families(self) -> List[FamilyConfig]:
        return [self.updates, self.blogs, self.videos]

    def get_family(self, name: str) -> FamilyConfig:
        """Look up a family by name.

        Raises:
            ConfigurationError: If no family has that name
        """
        for family in self.families():
            if family.name == name:
                return family
        raise ConfigurationError(
            f"Unknown feed family: {name}",
            config_key="feeds",
            error_code=ErrorCode.CONFIG_UNKNOWN_FAMILY,
        )


class ApiSettings(BaseModel):
    """Read API configuration."""
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=7071, ge=1, le=65535, description="Bind port")
    default_limit: int = Field(default=50, ge=1, description="Default result limit")
    max_limit: int = Field(default=1000, ge=1, description="Maximum result limit")
    allowed_origins: List[str] = Field(
        default_factory=lambda: [
            "https://localhost:5173",
            "http://localhost:5173",
            "http://localhost:7071",
            "https://localhost:7071",
        ],
        description="CORS origins",
    )
    web_app_url: Optional[str] = Field(default=None, description="Production web app origin")
    enable_hsts: bool = Field(default=False, description="Send Strict-Transport-Security")

    def origins(self) -> List[str]:
        origins = list(self.allowed_origins)
        if self.web_app_url:
            origins.append(self.web_app_url)
        return origins


class SchedulerSettings(BaseModel):
    """Recurring refresh configuration."""
    updates_interval_hours: float = Field(default=6.0, gt=0, description="Updates refresh period")
    blogs_interval_hours: float = Field(default=12.0, gt=0, description="Blogs refresh period")
    videos_interval_hours: float = Field(default=12.0, gt=0, description="Videos refresh period")
    warmup_on_start: bool = Field(default=True, description="Run warmup before the first cycle")

    def interval_for(self, family: str) -> float:
        """Refresh period for a family, in hours."""
        return getattr(self, f"{family}_interval_hours", self.blogs_interval_hours)


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/pulsefeed.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class PulseFeedSettings(BaseSettings):
    """Main application settings."""

    store: StoreSettings = Field(default_factory=StoreSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    feeds: FeedsSettings = Field(default_factory=FeedsSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="PulseFeed", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "PULSEFEED_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration.

        Raises:
            ConfigurationError: If the configuration cannot work as deployed
        """
        errors = []

        if self.store.data_mode == DataMode.LIVE:
            path = (self.store.database_path or "").strip()
            if not path or path == ":memory:":
                errors.append(
                    "data_mode=live requires a valid database_path"
                )
            else:
                try:
                    Path(path).parent.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID,
            )

    def is_production_mode(self) -> bool:
        """Check if running in production mode."""
        return not self.debug and os.getenv("ENV", "development").lower() == "production"

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> PulseFeedSettings:
    """Load settings from environment variables, .env and defaults.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = PulseFeedSettings()
        settings.validate_configuration()
        return settings
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID,
        ) from e


# Global settings instance
_settings: Optional[PulseFeedSettings] = None


def get_settings(reload: bool = False) -> PulseFeedSettings:
    """Get global settings instance.

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
