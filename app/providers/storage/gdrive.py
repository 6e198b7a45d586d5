"""Google Drive provider: secondary tier for large files. Drive REST v3 over requests.

Files go into a per-owner subfolder (named after the owner id) under the configured root folder
and are shared 'anyone with the link can view'.
"""

from __future__ import annotations

import logging
import re
import threading
import time

import requests

from app.config import Settings
from app.exceptions import DeleteError, SecondaryUploadError, StorageError
from app.providers.storage.base import StorageProvider, timestamped_name
from app.schemas.storage import StorageType, UploadRequest, UploadResult
from app.storage_logging import log_storage_event

logger = logging.getLogger("app.providers.gdrive")

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

# https://drive.google.com/file/d/<id>/view  |  https://drive.google.com/open?id=<id>
_URL_ID_PATTERNS = (
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"[?&]id=([a-zA-Z0-9_-]+)"),
)


def file_id_from_url(file_url: str) -> str | None:
    """Extract the Drive file id from a view/open URL. None if neither URL shape matches."""
    for pattern in _URL_ID_PATTERNS:
        match = pattern.search(file_url or "")
        if match:
            return match.group(1)
    return None


def view_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view"


def _quote_q(value: str) -> str:
    """Escape a literal for a Drive search query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class OAuthRefreshTokenSource:
    """Access tokens from a long-lived OAuth refresh token (personal account). Refreshed when expired."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        session: requests.Session | None = None,
        timeout: int = 30,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._session = session or requests.Session()
        self._timeout = timeout
        self._token: str | None = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def access_token(self) -> str:
        with self._lock:
            # refresh a minute early so a token never expires mid-upload
            if self._token and time.time() < self._expires_at - 60:
                return self._token
            resp = self._session.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "refresh_token": self._refresh_token,
                    "grant_type": "refresh_token",
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
            if resp.status_code != 200:
                logger.warning("Google token refresh failed: %s %s", resp.status_code, resp.text[:200])
                raise StorageError(f"Google token refresh failed ({resp.status_code})")
            data = resp.json()
            token = data.get("access_token")
            if not token:
                raise StorageError("Google token refresh returned no access_token")
            self._token = token
            self._expires_at = time.time() + int(data.get("expires_in") or 3600)
            return token


class ServiceAccountTokenSource:
    """Access tokens for a service account key file (google-auth handles signing and expiry)."""

    def __init__(self, key_file: str) -> None:
        from google.oauth2 import service_account

        self._credentials = service_account.Credentials.from_service_account_file(key_file, scopes=DRIVE_SCOPES)
        self._lock = threading.Lock()

    def access_token(self) -> str:
        from google.auth.transport.requests import Request

        with self._lock:
            if not self._credentials.valid:
                try:
                    self._credentials.refresh(Request())
                except Exception as e:
                    raise StorageError(f"Service account token refresh failed: {e}") from e
            return self._credentials.token


class GoogleDriveStorageProvider(StorageProvider):
    """Storage using Google Drive. URL format: https://drive.google.com/file/d/<id>/view."""

    storage_type = StorageType.SECONDARY

    def __init__(
        self,
        token_source,
        folder_id: str | None = None,
        session: requests.Session | None = None,
        timeout: int = 60,
    ) -> None:
        self._tokens = token_source
        self.folder_id = folder_id or None
        self._session = session or requests.Session()
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleDriveStorageProvider | None":
        """Build from OAuth or service-account settings. Returns None when Drive is not configured."""
        mode = settings.drive_auth_mode
        if mode == "oauth":
            tokens = OAuthRefreshTokenSource(
                settings.google_oauth_client_id,
                settings.google_oauth_client_secret,
                settings.google_oauth_refresh_token,
                timeout=settings.storage_request_timeout,
            )
        elif mode == "service_account":
            tokens = ServiceAccountTokenSource(settings.google_service_account_file)
        else:
            return None
        return cls(tokens, settings.google_drive_folder_id, timeout=settings.storage_request_timeout)

    def _call(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self._tokens.access_token()}"
        return self._session.request(method, url, headers=headers, timeout=self._timeout, **kwargs)

    @staticmethod
    def _ensure_ok(resp: requests.Response, what: str) -> None:
        if not 200 <= resp.status_code < 300:
            raise SecondaryUploadError(
                f"Drive {what} failed: {resp.status_code} {resp.text[:200]}",
                {"status": str(resp.status_code)},
            )

    def get_or_create_owner_folder(self, owner_id: str) -> str:
        """Find the owner's subfolder under the root by exact name, or create it.

        Lookup then create without a lock: two concurrent first uploads for one owner can both
        miss the lookup and create two folders with the same name. Later lookups pick the first.
        """
        q = f"name='{_quote_q(owner_id)}' and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        if self.folder_id:
            q += f" and '{_quote_q(self.folder_id)}' in parents"
        resp = self._call(
            "GET",
            f"{DRIVE_API_BASE}/files",
            params={
                "q": q,
                "fields": "files(id, name)",
                "spaces": "drive",
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            },
        )
        self._ensure_ok(resp, "folder lookup")
        files = resp.json().get("files") or []
        if files:
            return files[0]["id"]

        body: dict = {"name": owner_id, "mimeType": FOLDER_MIME_TYPE}
        if self.folder_id:
            body["parents"] = [self.folder_id]
        resp = self._call(
            "POST",
            f"{DRIVE_API_BASE}/files",
            params={"fields": "id", "supportsAllDrives": "true"},
            json=body,
        )
        self._ensure_ok(resp, "folder create")
        folder_id = resp.json()["id"]
        log_storage_event("folder_created", owner_id=owner_id, storage_type=self.storage_type.value, file_id=folder_id)
        return folder_id

    def _upload_bytes(self, request: UploadRequest, parent_id: str) -> dict:
        """Resumable upload: open a session with the metadata, then PUT the bytes. Returns {id, webViewLink}."""
        resp = self._call(
            "POST",
            f"{DRIVE_UPLOAD_BASE}/files",
            params={"uploadType": "resumable", "fields": "id, webViewLink", "supportsAllDrives": "true"},
            headers={
                "X-Upload-Content-Type": request.mime_type,
                "X-Upload-Content-Length": str(len(request.file_bytes)),
            },
            json={
                "name": timestamped_name(request.file_name),
                "parents": [parent_id],
                "mimeType": request.mime_type,
            },
        )
        self._ensure_ok(resp, "upload session")
        session_url = resp.headers.get("Location")
        if not session_url:
            raise SecondaryUploadError("Drive upload session returned no Location header")
        resp = self._call(
            "PUT",
            session_url,
            data=request.file_bytes,
            headers={"Content-Type": request.mime_type},
        )
        self._ensure_ok(resp, "upload")
        return resp.json()

    def _share_with_link(self, file_id: str) -> None:
        resp = self._call(
            "POST",
            f"{DRIVE_API_BASE}/files/{file_id}/permissions",
            params={"supportsAllDrives": "true"},
            json={"role": "reader", "type": "anyone"},
        )
        self._ensure_ok(resp, "permission grant")

    def upload(self, request: UploadRequest) -> UploadResult:
        try:
            parent_id = self.get_or_create_owner_folder(request.owner_id)
            created = self._upload_bytes(request, parent_id)
            file_id = created.get("id")
            if not file_id:
                raise SecondaryUploadError("Drive upload returned no file id")
            try:
                self._share_with_link(file_id)
            except Exception:
                # the caller falls back to Supabase; do not leave an unshared copy behind
                self._discard(file_id)
                raise
        except SecondaryUploadError:
            raise
        except Exception as e:
            raise SecondaryUploadError(f"Drive upload failed: {e}") from e
        return UploadResult(
            file_url=created.get("webViewLink") or view_url(file_id),
            storage_type=self.storage_type,
            file_id=file_id,
        )

    def _discard(self, file_id: str) -> None:
        try:
            self.delete(file_id)
        except DeleteError as e:
            logger.warning("Could not remove partial Drive upload %s: %s", file_id, e)

    def delete(self, object_id: str) -> None:
        try:
            resp = self._call(
                "DELETE",
                f"{DRIVE_API_BASE}/files/{object_id}",
                params={"supportsAllDrives": "true"},
            )
        except Exception as e:
            raise DeleteError(f"Drive delete failed: {e}", {"file_id": object_id}) from e
        if resp.status_code == 404:
            return
        if not 200 <= resp.status_code < 300:
            raise DeleteError(
                f"Drive delete failed: {resp.status_code} {resp.text[:200]}",
                {"file_id": object_id, "status": str(resp.status_code)},
            )

    def exists(self, object_id: str) -> bool:
        resp = self._call(
            "GET",
            f"{DRIVE_API_BASE}/files/{object_id}",
            params={"fields": "id, trashed", "supportsAllDrives": "true"},
        )
        if resp.status_code == 404:
            return False
        if resp.status_code != 200:
            raise StorageError(f"Drive lookup failed: {resp.status_code}", {"file_id": object_id})
        return not resp.json().get("trashed", False)

    def object_id_from_url(self, file_url: str) -> str | None:
        return file_id_from_url(file_url)
