from pathlib import Path
from urllib.parse import urlparse
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Remote scheduling service
    SCHEDULING_API_URL: str = "http://localhost:3000"
    SCHEDULING_API_TIMEOUT: float = 10.0

    # IANA zone used for weekday / hour-of-day decisions and calendar windows
    LOCAL_TIMEZONE: str = "UTC"

    # =================================================================
    # DISCOVERY SETTINGS
    # =================================================================
    RECOMMENDATION_LIMIT: int = 3
    CALENDAR_REFRESH_SECONDS: float = 10.0
    ACTIVITY_TICK_SECONDS: float = 3.0
    ACTIVITY_EVENT_TTL_SECONDS: float = 5.0
    ACTIVITY_FEED_CAPACITY: int = 5
    ACTIVITY_FEED_SEED: int | None = None

    # Viewers never announce they left; untouched feeds/sessions are reaped
    ACTIVITY_FEED_IDLE_SECONDS: float = 60.0
    ACTIVITY_FEED_MAX_LIVE: int = 500
    CALENDAR_SESSION_IDLE_SECONDS: float = 300.0
    CALENDAR_SESSION_MAX_LIVE: int = 200

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def local_tz(self) -> ZoneInfo:
        """Zone object for LOCAL_TIMEZONE."""
        return ZoneInfo(self.LOCAL_TIMEZONE)

    def scheduling_api_host(self) -> str | None:
        """
        Host part of SCHEDULING_API_URL, e.g.
        http://scheduler.internal:3000 -> scheduler.internal
        """
        try:
            return urlparse(self.SCHEDULING_API_URL).hostname
        except Exception:
            return None

    def get_activity_feed_config(self) -> dict:
        """
        Get activity feed timing configuration.
        Development keeps the production cadence; tests pass their own values.
        """
        return {
            "tick_seconds": self.ACTIVITY_TICK_SECONDS,
            "ttl_seconds": self.ACTIVITY_EVENT_TTL_SECONDS,
            "capacity": self.ACTIVITY_FEED_CAPACITY,
        }


settings = Settings()
