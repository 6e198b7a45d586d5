"""Exception hierarchy for the storage service."""

from __future__ import annotations


class StorageError(Exception):
    """Base exception for all storage errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(StorageError):
    """Raised when the primary provider is missing or misconfigured."""


class InvalidUploadError(StorageError, ValueError):
    """Raised when an upload request is empty or has no owner."""


class SecondaryUploadError(StorageError):
    """Raised when the Google Drive upload fails. The router falls back to Supabase."""


class PrimaryUploadError(StorageError):
    """Raised when the Supabase upload fails. Terminal: no tier left to try."""


class DeleteError(StorageError):
    """Raised by a provider when a delete fails. The router logs and swallows it."""
