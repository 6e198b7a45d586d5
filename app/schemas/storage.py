"""Storage schemas: provider tags, upload request and upload result."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StorageType(str, Enum):
    """Which provider holds the bytes. Values match the persisted document column."""

    PRIMARY = "SUPABASE"
    SECONDARY = "GDRIVE"


class UploadRequest(BaseModel):
    """One file to store for one owner. Built per request, never persisted."""

    file_bytes: bytes = Field(..., repr=False)
    file_name: str = Field(..., description="Original filename")
    mime_type: str = Field(default="application/octet-stream")
    owner_id: str = Field(..., description="Authenticated owner (user id)")
    size_bytes: int | None = Field(default=None, description="Declared size; defaults to len(file_bytes)")

    @model_validator(mode="after")
    def default_size(self) -> "UploadRequest":
        if self.size_bytes is None:
            self.size_bytes = len(self.file_bytes)
        return self


class UploadResult(BaseModel):
    """Where a file ended up. storage_type is authoritative (fallback can change the provider)."""

    model_config = ConfigDict(populate_by_name=True)

    file_url: str = Field(..., alias="fileUrl", description="Public URL (Supabase) or view URL (Drive)")
    storage_type: StorageType = Field(..., alias="storageType")
    file_id: str | None = Field(
        None,
        alias="fileId",
        description="Provider object id: Drive file id or Supabase object key",
    )
