"""Request and response schemas for API endpoints."""

from app.schemas.requests import DeleteFileRequest
from app.schemas.responses import HealthResponse, OAuthUrlResponse
from app.schemas.storage import StorageType, UploadRequest, UploadResult

__all__ = [
    "DeleteFileRequest",
    "HealthResponse",
    "OAuthUrlResponse",
    "StorageType",
    "UploadRequest",
    "UploadResult",
]
