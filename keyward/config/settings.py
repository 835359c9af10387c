"""Configuration settings using Pydantic."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # API Settings
    app_name: str = Field(default="keyward", alias="KEYWARD_APP_NAME")
    api_host: str = Field(default="127.0.0.1", alias="KEYWARD_HOST")
    api_port: int = Field(default=8080, alias="KEYWARD_PORT")

    # Credential store
    database_path: Path = Field(
        default=Path.home() / ".local" / "share" / "keyward" / "keyward.db",
        alias="KEYWARD_DB_PATH",
    )
    database_timeout: float = Field(
        default=30.0,
        alias="KEYWARD_DB_TIMEOUT",
        description="Seconds to wait on a locked database",
    )

    # Authentication
    auth_provider: Literal["database", "static"] = Field(
        default="database",
        alias="KEYWARD_AUTH_PROVIDER",
        description="Key registry: database (registered users) or static (configured keys)",
    )
    admin_api_keys: str = Field(
        default="",
        alias="KEYWARD_ADMIN_API_KEYS",
        description="Static admin keys: key:userId:username:ROLE1,ROLE2|...",
    )
    user_api_keys: str = Field(
        default="",
        alias="KEYWARD_USER_API_KEYS",
        description="Static user keys, same format as admin keys",
    )
    public_paths: str = Field(
        default="/,/health,/actuator",
        alias="KEYWARD_PUBLIC_PATHS",
        description="Comma-separated path prefixes that skip API key authentication",
    )
    bcrypt_rounds: int = Field(default=12, ge=4, le=31, alias="KEYWARD_BCRYPT_ROUNDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    security_log_enabled: bool = Field(default=True, alias="KEYWARD_SECURITY_LOG_ENABLED")

    @property
    def public_path_list(self) -> list[str]:
        """Public path prefixes as a list."""
        return [p.strip() for p in self.public_paths.split(",") if p.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings()
