"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "kuconnect_user"
    postgres_password: str = "password"
    postgres_db: str = "kuconnect_db"

    # Overrides the postgres_* fields when set (e.g. sqlite:///./dev.db)
    database_url: Optional[str] = None

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 15

    # Rate limiting (window lengths in milliseconds)
    rate_limit_enabled: bool = True
    rate_limit_window_ms: int = 15 * 60 * 1000
    rate_limit_general_max: int = 1000
    rate_limit_strict_max: int = 300
    rate_limit_auth_max: int = 5
    rate_limit_write_max: int = 100
    rate_limit_search_max: int = 500
    rate_limit_preferences_max: int = 30
    rate_limit_admin_read_max: int = 60
    rate_limit_admin_write_max: int = 30
    rate_limit_admin_hourly_window_ms: int = 60 * 60 * 1000
    rate_limit_admin_critical_max: int = 20
    rate_limit_admin_announcement_max: int = 10

    # Use the first X-Forwarded-For hop as the client address
    trust_proxy_headers: bool = False

    # App
    cors_origins: str = "*"  # comma-separated
    log_level: str = "INFO"
    debug: bool = False

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or self.postgres_url

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
