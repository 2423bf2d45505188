from __future__ import annotations

from functools import lru_cache

from pydantic import AnyHttpUrl, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from thinning.core.errors import ConfigurationError

DEFAULT_ADMIN_PASSWORD_HASH = (
    "$2b$12$sdOU8uwfeIt/6CaZUIM6ke71zg30wHn0r3QC4TDA3xHYwQxTVEEXi"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="THINNING_",
        case_sensitive=False,
    )

    env: str = Field(default="development")
    debug: bool = Field(default=False)
    docs_enabled: bool = Field(default=True)
    log_level: str = Field(default="INFO", pattern=r"^(?i:debug|info|warning|error|critical)$")

    secret_key: str = Field(min_length=32)
    algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=30, ge=1, le=60 * 24 * 30)

    admin_username: str = Field(default="admin", min_length=3, max_length=64)
    admin_password_hash: str = Field(default=DEFAULT_ADMIN_PASSWORD_HASH, min_length=10)

    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])

    influx_url: AnyHttpUrl = Field(default="http://influxdb:8086")
    influx_token: str = Field(min_length=10)
    influx_org: str = Field(min_length=1)
    influx_bucket: str = Field(min_length=1)
    influx_timeout_ms: int = Field(default=10_000, ge=1000, le=120_000)

    # Series are named <prefix><resource id>; the prefix is also used as a
    # regex anchor in snapshot queries, so it stays a plain identifier.
    series_prefix: str = Field(default="r", pattern=r"^[A-Za-z][A-Za-z0-9_]{0,15}$")
    nearest_tolerance_seconds: int = Field(default=600, ge=1, le=60 * 60 * 24)
    default_granularity_seconds: int = Field(default=3600, ge=1)

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"


def load_settings() -> Settings:
    try:
        settings = Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid store configuration: {e}") from e
    if not settings.cors_origins:
        settings.cors_origins = ["http://localhost:3000", "http://localhost:8000"]
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
