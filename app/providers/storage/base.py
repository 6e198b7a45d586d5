"""Storage provider protocol: upload raw files, delete and look them up by provider object id."""

import time

from app.schemas.storage import StorageType, UploadRequest, UploadResult


def timestamped_name(file_name: str) -> str:
    """Collision-resistant object name: '<epoch ms>-<original name>' (path separators removed)."""
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1].strip() or "file"
    return f"{int(time.time() * 1000)}-{base}"


class StorageProvider:
    """Abstract storage: upload returns an UploadResult tagged with this provider's storage_type."""

    storage_type: StorageType

    def upload(self, request: UploadRequest) -> UploadResult:
        """Store request.file_bytes for request.owner_id; return URL and provider object id."""
        ...

    def delete(self, object_id: str) -> None:
        """Remove the object. An already-absent object is not an error; other failures raise DeleteError."""
        ...

    def exists(self, object_id: str) -> bool:
        """Return True if the object is present."""
        ...

    def object_id_from_url(self, file_url: str) -> str | None:
        """Recover the provider object id from a URL this provider returned, or None if it does not parse."""
        ...
