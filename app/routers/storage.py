"""Storage API: size-routed upload, best-effort delete, and the Google Drive OAuth bootstrap."""

import asyncio
import html
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import HTMLResponse, Response

from app.config import get_settings
from app.exceptions import ConfigurationError, InvalidUploadError, PrimaryUploadError, StorageError
from app.schemas.requests import DeleteFileRequest
from app.schemas.responses import OAuthUrlResponse
from app.schemas.storage import StorageType, UploadRequest, UploadResult
from app.services import drive_oauth
from app.services.storage_router import StorageRouter, get_storage_router
from app.storage_logging import log_storage_event

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Storage"])

_SUCCESS_PAGE = """<html>
<body style="font-family: sans-serif; max-width: 600px; margin: 40px auto; padding: 20px;">
  <h2 style="color: #22c55e;">Google Drive connected</h2>
  <p>Add this to your <code>.env</code> file:</p>
  <pre style="background: #1e1e1e; color: #d4d4d4; padding: 16px; border-radius: 8px; white-space: pre-wrap; word-break: break-all;">GOOGLE_OAUTH_REFRESH_TOKEN={token}</pre>
  <p>Then restart the API server.</p>
</body>
</html>"""

_ERROR_PAGE = """<html>
<body style="font-family: sans-serif; max-width: 600px; margin: 40px auto; padding: 20px;">
  <h2 style="color: #ef4444;">Error</h2>
  <p>{message}</p>
  <p>Try again: <a href="/storage/oauth/url">Get new auth URL</a></p>
</body>
</html>"""


def storage_router_dependency() -> StorageRouter:
    """FastAPI dependency: the process-wide router, or 503 when Supabase is not configured."""
    try:
        return get_storage_router()
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message) from e


def _callback_uri(request: Request) -> str:
    return f"{str(request.base_url).rstrip('/')}/auth/google/callback"


@router.post(
    "/storage/upload",
    response_model=UploadResult,
    summary="Upload file",
    description="Store a file: >= 10 MB goes to Google Drive (when configured), smaller files to Supabase Storage. "
    "A failed Drive upload falls back to Supabase; storageType in the response says where the file is.",
    operation_id="uploadFile",
)
async def upload(
    file: UploadFile = File(..., description="File to store"),
    user_id: str | None = Form(None, alias="userId", description="Owner id (defaults to 'anonymous')"),
    storage: StorageRouter = Depends(storage_router_dependency),
) -> UploadResult:
    content = await file.read()
    max_bytes = get_settings().max_upload_bytes
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large (max {max_bytes // (1024 * 1024)} MB)",
        )
    owner_id = (user_id or "").strip() or "anonymous"
    request = UploadRequest(
        file_bytes=content,
        file_name=file.filename or "file",
        mime_type=file.content_type or "application/octet-stream",
        owner_id=owner_id,
    )
    logger.info(
        "Storage upload: %s (%.2f MB) for user %s",
        request.file_name,
        request.size_bytes / 1024 / 1024,
        owner_id,
    )
    try:
        return await asyncio.to_thread(storage.upload, request)
    except InvalidUploadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    except PrimaryUploadError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message) from e


@router.post(
    "/storage/delete",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete stored file",
    description="Best-effort removal of a file returned by /storage/upload. Always 204: a missing or "
    "unreachable blob never blocks deleting the document record.",
    operation_id="deleteFile",
)
async def delete(
    body: DeleteFileRequest,
    storage: StorageRouter = Depends(storage_router_dependency),
) -> Response:
    try:
        storage_type = StorageType(body.storage_type)
    except ValueError:
        log_storage_event("delete_skipped", storage_type=body.storage_type, error="unknown storage type")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    await asyncio.to_thread(storage.delete, body.file_url, storage_type, body.file_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/storage/oauth/url",
    response_model=OAuthUrlResponse,
    summary="Google Drive OAuth URL",
    description="Step 1 of the one-time Drive setup: open the returned URL and grant access.",
    operation_id="getDriveOAuthUrl",
)
async def oauth_url(request: Request) -> OAuthUrlResponse:
    try:
        url = drive_oauth.get_auth_url(_callback_uri(request))
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return OAuthUrlResponse(
        url=url,
        instructions="Open this URL in your browser, sign in with your Google account, and grant access. "
        "You will be redirected back with a refresh token to put in your .env file.",
    )


@router.get(
    "/auth/google/callback",
    response_class=HTMLResponse,
    summary="Google OAuth callback",
    description="Step 2: Google redirects here; the code is exchanged and the refresh token is displayed.",
    operation_id="driveOAuthCallback",
    include_in_schema=False,
)
async def oauth_callback(request: Request, code: str = Query(..., alias="code")) -> HTMLResponse:
    try:
        refresh_token = await asyncio.to_thread(drive_oauth.exchange_code, code, _callback_uri(request))
    except StorageError as e:
        logger.error("OAuth callback failed: %s", e)
        return HTMLResponse(_ERROR_PAGE.format(message=html.escape(e.message)), status_code=500)
    logger.info("Google OAuth refresh token obtained successfully")
    return HTMLResponse(_SUCCESS_PAGE.format(token=html.escape(refresh_token)))
