"""Health check: provider wiring and routing threshold."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.exceptions import ConfigurationError
from app.schemas.responses import HealthResponse
from app.services.storage_router import get_storage_router

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns 200 when Supabase Storage is configured, 503 otherwise. Reports whether Google Drive is wired.",
    operation_id="getHealth",
    responses={503: {"model": HealthResponse}},
)
async def health():
    settings = get_settings()
    try:
        storage = get_storage_router()
    except ConfigurationError as e:
        body = HealthResponse(
            status="not_ready",
            primary_configured=False,
            secondary_configured=False,
            threshold_bytes=0,
            detail=e.message,
        )
        return JSONResponse(status_code=503, content=body.model_dump())
    return HealthResponse(
        status="healthy",
        primary_configured=True,
        secondary_configured=storage.secondary_configured,
        drive_auth_mode=settings.drive_auth_mode if storage.secondary_configured else None,
        threshold_bytes=storage.config.threshold,
    )
