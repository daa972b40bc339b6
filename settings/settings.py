import logging

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

from app.environment import EnvironmentName
from settings.log import LoggingSettings


class DatabaseSettings(BaseSettings):
    url: str = Field(alias="DATABASE_URL", default="sqlite+aiosqlite:///./data/tracker.db")
    echo: bool = Field(alias="DATABASE_ECHO", default=False)
    create_tables: bool = Field(alias="DATABASE_CREATE_TABLES", default=True)
    busy_timeout: int = Field(alias="DATABASE_BUSY_TIMEOUT", default=5)

    @field_validator("url")
    def require_sqlite(cls, value: str, info: ValidationInfo) -> str:
        # Open deduplication is serialized by the SQLite write lock
        if not value.startswith("sqlite"):
            raise ValueError(f"Only SQLite databases are supported: {value.split(':', 1)[0]}")
        return value


class ServerSettings(BaseSettings):
    public_url: str = Field(alias="PUBLIC_URL", default="http://localhost:8080")
    port: int = Field(alias="PORT", default=8080)
    trust_forwarded_for: bool = Field(alias="TRUST_FORWARDED_FOR", default=True)


class TrackingSettings(BaseSettings):
    dedup_window_seconds: int = Field(alias="TRACKING_DEDUP_WINDOW", default=60)
    id_bytes: int = Field(alias="TRACKING_ID_BYTES", default=16, ge=8)


class CorsSettings(BaseSettings):
    allowed_origins: list[str] = Field(
        alias="CORS_ALLOWED_ORIGINS",
        default_factory=lambda: ["http://localhost:3000", "https://mail.google.com"],
    )


class ExtensionSettings(BaseSettings):
    api_base: str = Field(alias="TRACKER_API_BASE", default="http://localhost:8080")
    dashboard_url: str = Field(alias="DASHBOARD_URL", default="http://localhost:3000")
    settle_delay: float = Field(alias="COMPOSE_SETTLE_DELAY", default=0.5)
    notification_ttl: float = Field(alias="NOTIFICATION_TTL", default=3.0)
    request_timeout: int = Field(alias="TRACKER_REQUEST_TIMEOUT", default=10)


class SentrySettings(BaseSettings):
    dsn: str = Field(alias="SENTRY_DSN", default="")

    @property
    def is_enabled(self) -> bool:
        return bool(self.dsn)


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "allow"}

    environment: EnvironmentName = Field(alias="ENVIRONMENT", default=EnvironmentName.DEVELOPMENT)

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)
    extension: ExtensionSettings = Field(default_factory=ExtensionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sentry: SentrySettings = Field(default_factory=SentrySettings)

    @field_validator("environment", mode="before")
    def set_environment(cls, value: str | EnvironmentName, info: ValidationInfo) -> EnvironmentName:
        try:
            return EnvironmentName(value)
        except ValueError:
            logging.getLogger(__name__).warning(f"Invalid environment: {value}")
            return EnvironmentName.DEVELOPMENT
