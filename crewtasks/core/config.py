"""Configuration management for crewtasks."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    storage_backend: Literal["sqlite", "local"] = Field(
        default="sqlite", description="Repository backend selected once at startup"
    )
    sqlite_db_path: str = Field(default="data/crewtasks.db", description="Shared SQLite document store path")
    local_store_path: str = Field(default="data/local_store.json", description="Local key/value fallback file")

    # Redis Configuration (optional)
    redis_url: str | None = Field(default=None, description="Redis connection URL (e.g., redis://localhost:6379)")
    redis_channel: str = Field(default="crewtasks:changes", description="Pub/sub channel for change notices")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Session signing
    secret_key: str = Field(default="change-me", description="Secret used to sign session tokens")

    # Seed data
    seed_demo_data: bool = Field(default=False, description="Seed demo users and tasks into an empty store")
    admin_pin: str | None = Field(default=None, description="PIN for the seeded administrator")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Return a setting that must be present for a feature to run.

        Raises:
            ValueError: If the value is unset or empty, naming the environment variable
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Records
    RECORD_ID_LENGTH: int = 9
    DEFAULT_POSITION: str = "Employee"
    DEFAULT_AVATAR_URL: str = "https://ui-avatars.com/api/?name={name}&background=random"

    # Local store keys (mirror the browser local-storage layout)
    LOCAL_USERS_KEY: str = "users"
    LOCAL_TASKS_KEY: str = "tasks"

    # Sessions
    SESSION_MAX_AGE_SECONDS: int = 12 * 3600

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_SERVICE_UNAVAILABLE: int = 503

    # Redis Configuration
    REDIS_MAX_CONNECTIONS: int = 10

    # Live event streams
    SSE_KEEPALIVE_SECONDS: float = 15.0


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
