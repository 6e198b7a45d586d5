"""Response schemas for API endpoints."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check: which providers are wired and the routing threshold."""

    status: str = Field(..., description="healthy | not_ready")
    primary_configured: bool = Field(..., description="Supabase URL and service key are set")
    secondary_configured: bool = Field(..., description="Google Drive client is available")
    drive_auth_mode: str | None = Field(None, description="oauth | service_account (when Drive is configured)")
    threshold_bytes: int = Field(..., description="Files at or above this size go to Drive")
    detail: str | None = Field(None, description="Why the service is not ready")


class OAuthUrlResponse(BaseModel):
    """Google consent URL for the one-time Drive refresh token."""

    url: str = Field(..., description="Open in a browser to authorize Drive access")
    instructions: str = Field(..., description="What to do with the result")
