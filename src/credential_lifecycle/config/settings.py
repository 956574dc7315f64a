"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]
PositiveInt = Annotated[int, Field(gt=0)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    table_prefix: str = Field(default="", validation_alias="TABLE_PREFIX")
    app_name: NonEmptyStr = Field(validation_alias="APP_NAME")
    verification_link: HttpUrl = Field(validation_alias="VERIFICATION_LINK")
    reset_password_link: HttpUrl = Field(validation_alias="RESET_PASSWORD_LINK")
    email_source: NonEmptyStr = Field(validation_alias="EMAIL_SOURCE")
    email_delivery_mode: Literal["log", "http"] = Field(
        default="log",
        validation_alias="EMAIL_DELIVERY_MODE",
    )
    email_api_url: HttpUrl | None = Field(default=None, validation_alias="EMAIL_API_URL")
    email_api_token: NonEmptyStr | None = Field(
        default=None,
        validation_alias="EMAIL_API_TOKEN",
    )
    email_timeout_seconds: NonNegativeFloat = Field(
        default=20.0,
        validation_alias="EMAIL_TIMEOUT_SECONDS",
    )
    identity_token_secret: NonEmptyStr = Field(validation_alias="IDENTITY_TOKEN_SECRET")
    identity_token_issuer: NonEmptyStr = Field(
        default="credential-lifecycle",
        validation_alias="IDENTITY_TOKEN_ISSUER",
    )
    identity_token_ttl_seconds: PositiveInt = Field(
        default=3600,
        validation_alias="IDENTITY_TOKEN_TTL_SECONDS",
    )
    developer_provider_name: NonEmptyStr = Field(
        default="login.credentials",
        validation_alias="DEVELOPER_PROVIDER_NAME",
    )
    password_hash_iterations: PositiveInt = Field(
        default=4096,
        validation_alias="PASSWORD_HASH_ITERATIONS",
    )
    reset_token_ttl_seconds: PositiveInt = Field(
        default=3600,
        validation_alias="RESET_TOKEN_TTL_SECONDS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
