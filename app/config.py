from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List


DEFAULT_ICAL_HOSTS = (
    "airbnb.com,airbnb.it,airbnb.co.uk,airbnb.fr,airbnb.de,"
    "booking.com,booking.it,ical.booking.com,"
    "calendar.google.com,outlook.live.com,outlook.office365.com"
)


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./bookings.db",
        alias="DATABASE_URL"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # CORS - Frontend URLs from environment (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        alias="ALLOWED_ORIGINS"
    )

    # Rate limiting (slowapi); memory:// or redis://host:6379
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_storage_uri: str = Field(default="memory://", alias="RATE_LIMIT_STORAGE_URI")

    # ==============================================
    # External calendar (iCal) sync
    # ==============================================
    # Only feeds served from these hosts (or their sub-domains) are downloaded
    ical_allowed_hosts: str = Field(default=DEFAULT_ICAL_HOSTS, alias="ICAL_ALLOWED_HOSTS")

    ical_fetch_timeout_seconds: float = Field(default=30.0, alias="ICAL_FETCH_TIMEOUT_SECONDS")
    ical_max_feed_bytes: int = Field(default=5_000_000, alias="ICAL_MAX_FEED_BYTES")
    ical_user_agent: str = Field(default="RoomSync-CalendarSync/1.0", alias="ICAL_USER_AGENT")

    # Pause between two configs in a batch sync (rate limit, not a retry backoff)
    ical_sync_delay_seconds: float = Field(default=1.0, alias="ICAL_SYNC_DELAY_SECONDS")

    # Override records per insert statement
    ical_insert_batch_size: int = Field(default=100, alias="ICAL_INSERT_BATCH_SIZE")

    ical_default_sync_interval_hours: int = Field(default=12, alias="ICAL_DEFAULT_SYNC_INTERVAL_HOURS")

    # Replace a room's overrides in one transaction instead of delete-then-insert
    ical_atomic_replace: bool = Field(default=False, alias="ICAL_ATOMIC_REPLACE")

    # Scheduled sync (runs inside the FastAPI process)
    auto_sync_enabled: bool = Field(default=True, alias="AUTO_SYNC_ENABLED")
    auto_sync_poll_seconds: int = Field(default=3600, alias="AUTO_SYNC_POLL_SECONDS")

    # Pricing - months billed at the room's high season rate (1-12)
    high_season_months: str = Field(default="6,7,8,9", alias="HIGH_SEASON_MONTHS")

    @field_validator(
        "ical_fetch_timeout_seconds",
        "ical_insert_batch_size",
        "ical_default_sync_interval_hours",
        "auto_sync_poll_seconds",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        # Hosted Postgres hands out postgres:// but SQLAlchemy needs postgresql://
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)

        return origins if origins else ["http://localhost:5173"]

    @property
    def ical_allowed_host_list(self) -> List[str]:
        """Parse the feed host allow-list"""
        return [h.strip().lower() for h in self.ical_allowed_hosts.split(",") if h.strip()]

    @property
    def high_season_month_numbers(self) -> List[int]:
        """
        Parse high season months into month numbers.
        Default: [6, 7, 8, 9] (June - September)
        """
        try:
            return [int(m.strip()) for m in self.high_season_months.split(",") if m.strip()]
        except ValueError:
            return [6, 7, 8, 9]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
