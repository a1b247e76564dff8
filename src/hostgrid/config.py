from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HOSTGRID_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    site_hostname: str = Field("localhost", description="Suffix every query label is sent under")
    url_prefix: str = Field("http://", description="Scheme prepended to generated links")
    bind_host: str = "127.0.0.1"
    bind_port: int = 1472
    database_url: str = "sqlite:///hostgrid.db"
    pool_size: int = 5
    max_overflow: int = 5
    pool_timeout: float = Field(5.0, gt=0)
    hashing_mode: Literal["secure", "fast"] = "secure"
    admin_secret: str | None = None
    request_rate_limit: str = "600/minute"
    admin_rate_limit: str = "10/minute"
    font_path: str | None = None
    api_title: str = "hostgrid"
    log_level: str = "INFO"

    @field_validator("site_hostname")
    @classmethod
    def _normalize_hostname(cls, value: str) -> str:
        return value.strip().strip(".").lower()

    @field_validator("admin_secret")
    @classmethod
    def _check_admin_secret(cls, value: str | None) -> str | None:
        if not value:
            return None
        if "-" in value or "." in value:
            raise ValueError("admin secret must fit in a single query segment")
        # Hostnames arrive lowercased.
        return value.lower()


settings = Settings()
