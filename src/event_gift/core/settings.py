"""Application settings and configuration.

This module defines all configuration options for the event gift service.
Settings are loaded from environment variables with sensible defaults.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Per-event knobs that organizers edit at runtime (approval toggle, lock
    window, lifecycle ages) live in the ``event_settings`` table instead.
    """

    # Application metadata
    app_name: str = Field(default="Event Gift", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and admin authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Database configuration
    database_url: str = Field(default="sqlite:///./event_gift.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Event identity; the lock window is computed in this IANA time zone
    event_id: str = Field(default="default", alias="EVENT_ID")
    event_timezone: str = Field(default="Asia/Jerusalem", alias="EVENT_TIMEZONE")

    # Guest anti-spam and self-service editing
    rate_limit_per_hour: int = Field(default=10, alias="RATE_LIMIT_PER_HOUR")
    rate_limit_window_minutes: int = Field(default=60, alias="RATE_LIMIT_WINDOW_MINUTES")
    edit_window_seconds: int = Field(default=60 * 60, alias="EDIT_WINDOW_SECONDS")

    # Soft moderation provider (disabled when no key is configured)
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_moderation_model: str = Field(
        default="omni-moderation-latest",
        alias="OPENAI_MODERATION_MODEL",
    )
    openai_moderation_url: str = Field(
        default="https://api.openai.com/v1/moderations",
        alias="OPENAI_MODERATION_URL",
    )
    moderation_timeout_seconds: float = Field(default=5.0, alias="MODERATION_TIMEOUT_SECONDS")

    # Scheduled sweeps
    cron_secret: str | None = Field(default=None, alias="CRON_SECRET")
    cron_trusted_header: str = Field(default="x-vercel-cron", alias="CRON_TRUSTED_HEADER")
    archive_batch_size: int = Field(default=200, alias="ARCHIVE_BATCH_SIZE")
    delete_batch_size: int = Field(default=100, alias="DELETE_BATCH_SIZE")
    drive_sync_batch_size: int = Field(default=10, alias="DRIVE_SYNC_BATCH_SIZE")

    # Object storage and off-site backup
    media_root: str = Field(default="./media", alias="MEDIA_ROOT")
    gdrive_service_account_json: str | None = Field(
        default=None,
        alias="GDRIVE_SERVICE_ACCOUNT_JSON",
    )
    gdrive_root_folder_id: str | None = Field(default=None, alias="GDRIVE_ROOT_FOLDER_ID")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("event_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone: {value}") from exc
        return value

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def moderation_enabled(self) -> bool:
        """Return True when an external moderation provider is configured."""
        return bool(self.openai_api_key)

    @property
    def drive_enabled(self) -> bool:
        """Return True when off-site backup credentials and folder are configured."""
        return bool(self.gdrive_service_account_json and self.gdrive_root_folder_id)


settings = Settings()  # type: ignore[call-arg]
