"""
Application configuration loaded from environment variables.
Use .env file or export variables; see .env.example for the keys.
Supabase Storage is always required; Google Drive is optional (absent credentials disable size routing).
"""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Files at or above this size go to Google Drive when it is configured.
DRIVE_THRESHOLD_BYTES = 10 * 1024 * 1024  # 10 MiB


class Settings(BaseSettings):
    """Environment-based settings. Validates on load."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- Supabase Storage (primary; required) ---
    # The web app shares its .env with the API, so the public URL name is accepted too.
    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_service_role_key: str = ""
    supabase_storage_bucket: str = "documents"

    # --- Google Drive (secondary; optional) ---
    # OAuth 2.0 for personal accounts (refresh token from GET /storage/oauth/url)
    google_oauth_client_id: str = ""
    google_oauth_client_secret: str = ""
    google_oauth_refresh_token: str = ""
    # Service account alternative: path to the JSON key file (needs GOOGLE_DRIVE_FOLDER_ID)
    google_service_account_file: str = ""
    google_drive_folder_id: str = ""

    # Per-call timeout for provider requests (seconds)
    storage_request_timeout: int = 60
    # HTTP upload cap
    max_upload_bytes: int = 100 * 1024 * 1024  # 100 MiB

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: str = "http://localhost:3000"
    log_file: str = ""

    @field_validator(
        "supabase_url",
        "supabase_service_role_key",
        "supabase_storage_bucket",
        "google_oauth_client_id",
        "google_oauth_client_secret",
        "google_oauth_refresh_token",
        "google_service_account_file",
        "google_drive_folder_id",
    )
    @classmethod
    def strip_optional(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("storage_request_timeout", "max_upload_bytes")
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @property
    def drive_oauth_configured(self) -> bool:
        """True if client id, secret and refresh token are all set."""
        return bool(
            self.google_oauth_client_id and self.google_oauth_client_secret and self.google_oauth_refresh_token
        )

    @property
    def drive_service_account_configured(self) -> bool:
        """True if a key file exists on disk and a destination folder is set."""
        if not (self.google_service_account_file and self.google_drive_folder_id):
            return False
        return Path(self.google_service_account_file).is_file()

    @property
    def drive_auth_mode(self) -> str | None:
        """'oauth' | 'service_account' | None. OAuth wins when both are configured."""
        if self.drive_oauth_configured:
            return "oauth"
        if self.drive_service_account_configured:
            return "service_account"
        return None

    def get_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance (env read once)."""
    return Settings()
