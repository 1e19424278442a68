"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveFloat = Annotated[float, Field(gt=0.0)]
PositiveInt = Annotated[int, Field(gt=0)]
PortInt = Annotated[int, Field(gt=0, le=65535)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(
        default="sqlite+aiosqlite:///./clubstatus.db",
        validation_alias="DATABASE_URL",
    )
    api_host: NonEmptyStr = Field(default="localhost", validation_alias="API_HOST")
    api_port: PortInt = Field(default=8000, validation_alias="API_PORT")
    api_password: str | None = Field(default=None, validation_alias="API_PASSWORD")
    presence_cycle_seconds: PositiveFloat = Field(
        default=20.0,
        validation_alias="PRESENCE_CYCLE_SECONDS",
    )
    presence_timeout_seconds: PositiveFloat = Field(
        default=900.0,
        validation_alias="PRESENCE_TIMEOUT_SECONDS",
    )
    presence_inbox_size: PositiveInt = Field(default=256, validation_alias="PRESENCE_INBOX_SIZE")
    notification_queue_size: PositiveInt | None = Field(
        default=None,
        validation_alias="NOTIFICATION_QUEUE_SIZE",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()
