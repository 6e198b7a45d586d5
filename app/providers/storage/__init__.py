"""Storage providers: supabase (primary, always on) and gdrive (secondary, optional)."""

import logging

from app.config import Settings
from app.providers.storage.base import StorageProvider
from app.providers.storage.gdrive import GoogleDriveStorageProvider
from app.providers.storage.supabase import SupabaseStorageProvider

logger = logging.getLogger("app.providers.storage")


def build_secondary_provider(settings: Settings) -> GoogleDriveStorageProvider | None:
    """Google Drive provider, or None (with a warning) when credentials are absent or unusable."""
    if settings.drive_auth_mode is None:
        logger.warning(
            "Google Drive not configured - large files will be stored in Supabase. "
            "Run GET /storage/oauth/url to set up Google Drive."
        )
        return None
    try:
        provider = GoogleDriveStorageProvider.from_settings(settings)
    except Exception as e:
        logger.error("Failed to initialize Google Drive: %s", e)
        return None
    logger.info("Google Drive initialized (%s)", settings.drive_auth_mode)
    return provider


__all__ = [
    "StorageProvider",
    "GoogleDriveStorageProvider",
    "SupabaseStorageProvider",
    "build_secondary_provider",
]
