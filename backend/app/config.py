from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Huddle API", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=True, description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        description="List of allowed CORS origins",
    )
    cors_allow_origin_regex: str | None = Field(
        default=r"^https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?$",
        description="Optional regular expression that matches allowed CORS origins",
    )

    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the DB_* settings when present",
    )
    database_user: str = Field(
        default="huddle", validation_alias=AliasChoices("DB_USER", "database_user")
    )
    database_password: str = Field(
        default="huddle", validation_alias=AliasChoices("DB_PASSWORD", "database_password")
    )
    database_host: str = Field(
        default="db", validation_alias=AliasChoices("DB_HOST", "database_host")
    )
    database_port: int = Field(
        default=3306, validation_alias=AliasChoices("DB_PORT", "database_port")
    )
    database_name: str = Field(
        default="huddle", validation_alias=AliasChoices("DB_NAME", "database_name")
    )

    jwt_secret_key: str = Field(default="changeme")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24)

    chat_history_default_limit: int = Field(default=50)
    chat_history_max_limit: int = Field(default=100)
    chat_message_max_length: int = Field(default=2000)
    feed_page_size: int = Field(default=20)
    notifications_page_size: int = Field(default=20)
    notifications_max_page_size: int = Field(default=100)

    websocket_keepalive_timeout_seconds: float = Field(
        default=30,
        description="Seconds to wait for a client frame before considering a keepalive ping",
    )
    websocket_keepalive_ping_interval_seconds: float = Field(
        default=25,
        description="Minimum idle time between two server keepalive pings",
    )
    realtime_push_timeout_seconds: float = Field(
        default=5,
        description="Upper bound for delivering one frame to one hub session",
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
