"""Request body schemas for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class DeleteFileRequest(BaseModel):
    """Locator previously returned by /storage/upload."""

    model_config = ConfigDict(populate_by_name=True)

    file_url: str = Field(..., alias="fileUrl", description="URL stored with the document")
    storage_type: str = Field(
        ...,
        alias="storageType",
        description="SUPABASE | GDRIVE; any other stored value (e.g. legacy CLOUDINARY) is skipped",
    )
    file_id: str | None = Field(
        None,
        alias="fileId",
        description="Provider object id when the document stored it (skips URL parsing)",
    )
