"""Quotes API settings, read from the environment.

Set `ENV_FILE` to also read a dotenv file during local development.
"""

import os
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url


class AppEnvironment(str, Enum):
    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


# Query options understood by create_engine()/create_async_engine() rather than
# by the database driver. They must not be forwarded to connect().
ENGINE_ONLY_URL_OPTIONS = frozenset(
    {"pool_size", "max_overflow", "pool_timeout", "pool_recycle", "pool_pre_ping", "echo"}
)

_TRUTHY = frozenset({"true", "1", "yes", "on"})

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "postgresql+psycopg": "postgresql+asyncpg",
    "postgresql+psycopg2": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def to_async_url(url: str) -> str:
    """Rewrite a database URL to use an async driver and drop engine-only options."""
    parsed = make_url(url)
    drivername = _ASYNC_DRIVERS.get(parsed.drivername, parsed.drivername)
    parsed = parsed.set(drivername=drivername).difference_update_query(ENGINE_ONLY_URL_OPTIONS)
    return parsed.render_as_string(hide_password=False)


class Settings(BaseSettings):
    """Typed process configuration; the cross-field checks run at import."""

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="", extra="ignore"
    )

    # Application
    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "quotes-api"
    app_log_level: str = "INFO"

    # Observability
    observability_enabled: bool = True
    observability_structured_logs: bool = True

    # Runtime connection; sync drivers are rewritten to their async twins
    database_url_app: str

    # Query builder defaults, shared by every resource catalogue
    query_default_record_limit: int = Field(default=25, ge=1)
    query_max_records: int = Field(default=200, ge=1)
    query_has_max_records: bool = True

    # Bearer token verification for write endpoints
    secret_key: str | None = None
    algorithm: str = "HS256"
    auth_audience: str | None = None

    # Writes accept any caller when set. Rejected outside APP_ENV=local.
    skip_jwt_validation: bool = Field(
        default=False, validation_alias="SECURITY_SKIP_JWT_VALIDATION"
    )

    # Comma separated
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        """CORS_ORIGINS split on commas."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def async_url(self) -> str:
        """DATABASE_URL_APP rewritten for the async engine."""
        return to_async_url(self.database_url_app)

    @field_validator("skip_jwt_validation", mode="before")
    @classmethod
    def parse_truthy_flag(cls, value: bool | str) -> bool:
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return bool(value)

    @field_validator("app_env", mode="before")
    @classmethod
    def normalize_app_env(cls, value: str | AppEnvironment) -> AppEnvironment:
        if isinstance(value, AppEnvironment):
            return value
        allowed = ", ".join(env.value for env in AppEnvironment)
        try:
            return AppEnvironment(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"APP_ENV must be one of: {allowed} (got {value!r})") from None

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject contradictory limits and unsafe production settings."""
        if self.query_default_record_limit > self.query_max_records:
            raise ValueError(
                "QUERY_DEFAULT_RECORD_LIMIT must not exceed QUERY_MAX_RECORDS "
                f"({self.query_default_record_limit} > {self.query_max_records})"
            )

        if self.skip_jwt_validation and self.app_env != AppEnvironment.LOCAL:
            raise ValueError(
                "SECURITY_SKIP_JWT_VALIDATION can only be set in local environment. "
                f"Current environment: {self.app_env.value}"
            )

        if self.app_env == AppEnvironment.PROD:
            if not self.secret_key or len(self.secret_key) < 32:
                raise ValueError("SECRET_KEY must be set and at least 32 characters in production")

            for origin in self.cors_origins_list:
                if "localhost" in origin or "127.0.0.1" in origin:
                    raise ValueError(
                        f"CORS origins must not contain localhost in production: {origin}"
                    )

        return self


settings = Settings()
