# teachtune/core/config.py
from functools import lru_cache

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration of the TeachTune scheduling service.

    Values are loaded from environment variables (or a local `.env` file)
    at runtime and cover:
    - DB connection
    - Scheduling horizon and local timezone of the teacher's device
    - Upcoming-lesson monitor cadence and lookahead window
    - Alert delivery channels (webhook / SMTP)
    - Internal API key
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "TeachTune Scheduler"
    APP_ENV: str = Field("local", description="Environment name: local/test/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the service.")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./teachtune.db",
        description="SQLAlchemy-compatible async database URL",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="Shared secret expected in X-Internal-Api-Key on /internal routes.",
    )

    # --- Scheduling ---
    LOCAL_TIMEZONE: str = Field(
        default="UTC",
        description=(
            "IANA timezone used to interpret wall-clock input (slot times, "
            "naive booking timestamps, 'today')."
        ),
    )
    SCHEDULE_HORIZON_MONTHS: int = Field(
        default=6,
        ge=1,
        description="How many months ahead recurring lessons are generated.",
    )

    # --- Upcoming-lesson monitor ---
    MONITOR_ENABLED: bool = Field(
        default=True,
        description="Run the upcoming-lesson monitor as a background task.",
    )
    ALERT_LOOKAHEAD_MINUTES: int = Field(
        default=15,
        ge=1,
        description="Alert when a pending lesson starts within this many minutes.",
    )
    MONITOR_SCAN_INTERVAL_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between two scans of the in-memory lesson snapshot.",
    )
    MONITOR_REFRESH_INTERVAL_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between two reloads of the lesson snapshot from the DB.",
    )
    ALERT_FEED_SIZE: int = Field(
        default=50,
        ge=1,
        description="Number of in-app alerts kept per teacher.",
    )

    # --- Alert delivery ---
    ALERT_WEBHOOK_URL: AnyHttpUrl | None = Field(
        default=None,
        description="Optional URL receiving a JSON POST for every lesson alert.",
    )
    ALERT_WEBHOOK_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        gt=0,
        description="HTTP timeout for webhook delivery.",
    )
    ALERT_EMAIL_RECIPIENTS: str | None = Field(
        default=None,
        description="Comma-separated list of email addresses receiving lesson alerts.",
    )

    # --- SMTP (email alert channel) ---
    SMTP_HOST: str | None = Field(
        default=None,
        description="SMTP host; the email channel stays off while unset.",
    )
    SMTP_PORT: int = Field(
        default=587,
        description="SMTP port (587 for STARTTLS).",
    )
    SMTP_USERNAME: str | None = Field(
        default=None,
        description="SMTP login user; login is skipped when empty.",
    )
    SMTP_PASSWORD: str | None = Field(
        default=None,
        description="SMTP login password.",
    )
    SMTP_USE_TLS: bool = Field(
        default=True,
        description="Upgrade the SMTP connection with STARTTLS.",
    )
    SMTP_FROM_ADDRESS: str | None = Field(
        default=None,
        description="From address used in alert emails.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Settings are read and validated once per process. Tests set their
    environment before the first call.
    """
    return Settings()
