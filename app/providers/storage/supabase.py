"""Supabase Storage provider: primary tier. Objects keyed '<owner>/<epoch ms>-<name>' in one bucket."""

from __future__ import annotations

import logging
from urllib.parse import unquote, urlsplit

from supabase import Client, create_client
from supabase.client import ClientOptions

from app.config import Settings
from app.exceptions import ConfigurationError, DeleteError, PrimaryUploadError
from app.providers.storage.base import StorageProvider, timestamped_name
from app.schemas.storage import StorageType, UploadRequest, UploadResult

logger = logging.getLogger("app.providers.supabase")


def build_supabase_client(settings: Settings) -> Client:
    """Service-role client for Storage. Raises ConfigurationError if URL or key is missing or malformed."""
    if not settings.supabase_configured:
        raise ConfigurationError(
            "Supabase Storage is not configured. Set SUPABASE_URL (or NEXT_PUBLIC_SUPABASE_URL) "
            "and SUPABASE_SERVICE_ROLE_KEY in .env",
        )
    try:
        return create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
            options=ClientOptions(storage_client_timeout=settings.storage_request_timeout),
        )
    except Exception as e:
        raise ConfigurationError(f"Invalid Supabase configuration: {e}", {"supabase_url": settings.supabase_url}) from e


class SupabaseStorageProvider(StorageProvider):
    """Storage using a Supabase Storage bucket. URL format: <project>/storage/v1/object/public/<bucket>/<key>."""

    storage_type = StorageType.PRIMARY

    def __init__(self, client: Client, bucket: str = "documents") -> None:
        self._client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseStorageProvider":
        return cls(build_supabase_client(settings), settings.supabase_storage_bucket)

    def _bucket(self):
        return self._client.storage.from_(self.bucket)

    def upload(self, request: UploadRequest) -> UploadResult:
        key = f"{request.owner_id}/{timestamped_name(request.file_name)}"
        try:
            resp = self._bucket().upload(
                key,
                request.file_bytes,
                file_options={"content-type": request.mime_type, "upsert": "false"},
            )
            # storage3 returns an UploadResponse with the stored path; older releases return the raw response
            stored = getattr(resp, "path", None) or key
            public_url = self._bucket().get_public_url(stored)
        except Exception as e:
            raise PrimaryUploadError(
                f"Failed to upload to Supabase: {e}",
                {"bucket": self.bucket, "key": key},
            ) from e
        if not public_url:
            raise PrimaryUploadError("Supabase returned no public URL", {"bucket": self.bucket, "key": stored})
        return UploadResult(
            file_url=public_url.rstrip("?"),
            storage_type=self.storage_type,
            file_id=stored,
        )

    def delete(self, object_id: str) -> None:
        try:
            # remove() returns the deleted objects; a missing key just yields an empty list
            self._bucket().remove([object_id])
        except Exception as e:
            raise DeleteError(f"Supabase delete failed: {e}", {"bucket": self.bucket, "key": object_id}) from e

    def exists(self, object_id: str) -> bool:
        folder, _, name = object_id.rpartition("/")
        entries = self._bucket().list(folder, {"search": name}) or []
        return any(e.get("name") == name for e in entries)

    def object_id_from_url(self, file_url: str) -> str | None:
        """Key is everything after '/<bucket>/' in the URL path (public URL first, then any match)."""
        if not file_url:
            return None
        path = urlsplit(file_url).path
        for marker in (f"/object/public/{self.bucket}/", f"/{self.bucket}/"):
            if marker in path:
                key = unquote(path.split(marker, 1)[1])
                return key or None
        return None
