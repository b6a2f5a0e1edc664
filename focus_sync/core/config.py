"""Configuration management for focus-sync."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TOKEN_SECRET = "dev-secret"  # noqa: S105


class Settings(BaseSettings):
    """Server settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(default="development", description="Deployment environment name")

    # Token Configuration
    token_secret: str = Field(default=DEFAULT_TOKEN_SECRET, description="Process-wide secret used to sign tokens")
    access_token_ttl_seconds: int = Field(default=60 * 15, description="Lifetime of access tokens (in seconds)")
    refresh_token_ttl_seconds: int = Field(
        default=60 * 60 * 24 * 7, description="Lifetime of refresh tokens (in seconds)"
    )

    # Password Hashing
    password_hash_iterations: int = Field(default=310_000, description="PBKDF2 iteration count for password hashes")

    # CORS Configuration
    client_origin: str = Field(default="http://localhost:5173", description="Browser origin allowed by CORS")

    # Storage Configuration
    storage_backend: Literal["memory", "sqlite"] = Field(
        default="memory", description="Backend holding the authoritative user accounts"
    )
    sqlite_db_path: str = Field(default="./data/focus_sync.db", description="SQLite database file path")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    @property
    def is_production(self) -> bool:
        """Whether the server runs in production."""
        return self.environment.lower() == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


class ClientSettings(BaseSettings):
    """Sync client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FOCUS_SYNC_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = Field(default="http://localhost:4000", description="Base URL of the focus-sync server")
    cache_dir: Path = Field(
        default=Path.home() / ".focus_sync", description="Directory holding the durable local cache"
    )
    sync_timeout_seconds: float = Field(default=10.0, description="Timeout for a single sync request")


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_BAD_REQUEST: int = 400
    HTTP_UNAUTHORIZED: int = 401
    HTTP_NOT_FOUND: int = 404
    HTTP_METHOD_NOT_ALLOWED: int = 405
    HTTP_CONFLICT: int = 409

    # Token Claims
    TOKEN_TYPE_ACCESS: str = "access"
    TOKEN_TYPE_REFRESH: str = "refresh"
    TOKEN_SALT: str = "focus-sync-auth"
    TOKEN_NONCE_BYTES: int = 16

    # Password Hashing
    PASSWORD_SALT_BYTES: int = 16
    PASSWORD_HASH_ALGORITHM: str = "pbkdf2_sha256"

    # Sync Messages
    SYNC_MESSAGE_PROFILE: str = "Synced with profile"
    SYNC_MESSAGE_ANONYMOUS: str = "Synced locally (no authenticated user)"
    SYNC_NOTE_NEVER_SYNCED: str = "Not synced yet"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
