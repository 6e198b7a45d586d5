"""Google Drive provider against the in-memory Drive API."""

import pytest

from app.exceptions import DeleteError, SecondaryUploadError, StorageError
from app.providers.storage.gdrive import (
    GOOGLE_TOKEN_URL,
    GoogleDriveStorageProvider,
    OAuthRefreshTokenSource,
    file_id_from_url,
)
from app.schemas.storage import StorageType, UploadRequest
from tests.conftest import FakeResponse, StaticTokenSource


def _request(owner_id: str = "user-1", name: str = "big.pdf") -> UploadRequest:
    return UploadRequest(file_bytes=b"0123456789", file_name=name, mime_type="application/pdf", owner_id=owner_id)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://drive.google.com/file/d/1AbC_d-9/view?usp=drivesdk", "1AbC_d-9"),
        ("https://drive.google.com/file/d/1AbC_d-9/view", "1AbC_d-9"),
        ("https://drive.google.com/open?id=XyZ_123", "XyZ_123"),
        ("https://drive.google.com/uc?export=download&id=XyZ_123", "XyZ_123"),
        ("https://drive.google.com/drive/my-drive", None),
        ("", None),
    ],
)
def test_file_id_from_url(url, expected):
    assert file_id_from_url(url) == expected


def test_owner_folder_is_reused(drive, drive_session):
    first = drive.upload(_request())
    second = drive.upload(_request(name="other.pdf"))

    folders = drive_session.folders_named("user-1")
    assert len(folders) == 1
    assert drive_session.files[first.file_id]["parents"] == drive_session.files[second.file_id]["parents"]


def test_each_owner_gets_a_folder(drive, drive_session):
    drive.upload(_request("alice"))
    drive.upload(_request("bob"))

    assert len(drive_session.folders_named("alice", parent="root-folder")) == 1
    assert len(drive_session.folders_named("bob", parent="root-folder")) == 1


def test_owner_id_with_quote_is_escaped(drive, drive_session):
    drive.upload(_request("o'brien"))
    drive.upload(_request("o'brien"))

    assert len(drive_session.folders_named("o'brien")) == 1


def test_without_root_folder_creates_folder_at_top_level(drive_session):
    provider = GoogleDriveStorageProvider(StaticTokenSource(), None, session=drive_session, timeout=5)

    result = provider.upload(_request())

    folder = drive_session.folders_named("user-1")[0]
    assert folder["parents"] == []
    assert result.storage_type == StorageType.SECONDARY


def test_upload_result_uses_web_view_link(drive):
    result = drive.upload(_request())

    assert result.file_url == f"https://drive.google.com/file/d/{result.file_id}/view?usp=drivesdk"


def test_upload_builds_view_url_when_link_missing(drive_session, monkeypatch):
    provider = GoogleDriveStorageProvider(StaticTokenSource(), "root", session=drive_session, timeout=5)
    monkeypatch.setattr(provider, "_upload_bytes", lambda request, parent_id: {"id": "abc123"})

    result = provider.upload(_request())

    assert result.file_url == "https://drive.google.com/file/d/abc123/view"


def test_permission_failure_removes_uploaded_file(drive, drive_session):
    drive_session.fail_on.add("permission")

    with pytest.raises(SecondaryUploadError, match="permission grant"):
        drive.upload(_request())

    assert [f for f in drive_session.files.values() if f["mimeType"] == "application/pdf"] == []


@pytest.mark.parametrize("op", ["list", "create_folder", "start_upload", "put"])
def test_http_failures_raise_secondary_error(drive, drive_session, op):
    drive_session.fail_on.add(op)

    with pytest.raises(SecondaryUploadError):
        drive.upload(_request())


def test_token_failure_raises_secondary_error(drive_session):
    class BrokenTokens:
        def access_token(self):
            raise StorageError("Google token refresh failed (400)")

    provider = GoogleDriveStorageProvider(BrokenTokens(), "root", session=drive_session, timeout=5)

    with pytest.raises(SecondaryUploadError, match="token refresh"):
        provider.upload(_request())


def test_delete_missing_file_is_not_an_error(drive):
    drive.delete("does-not-exist")


def test_delete_server_error_raises_delete_error(drive, drive_session):
    result = drive.upload(_request())
    drive_session.fail_on.add("delete")

    with pytest.raises(DeleteError):
        drive.delete(result.file_id)


def test_exists(drive):
    result = drive.upload(_request())

    assert drive.exists(result.file_id) is True
    drive.delete(result.file_id)
    assert drive.exists(result.file_id) is False


class FakeTokenSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.posts = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append((url, data))
        return self.responses.pop(0)


def test_oauth_token_is_cached_until_expiry():
    session = FakeTokenSession([FakeResponse(200, {"access_token": "tok-1", "expires_in": 3600})])
    tokens = OAuthRefreshTokenSource("cid", "secret", "refresh", session=session)

    assert tokens.access_token() == "tok-1"
    assert tokens.access_token() == "tok-1"
    assert len(session.posts) == 1
    url, data = session.posts[0]
    assert url == GOOGLE_TOKEN_URL
    assert data["grant_type"] == "refresh_token"
    assert data["refresh_token"] == "refresh"


def test_oauth_token_refreshed_when_expired():
    session = FakeTokenSession(
        [
            FakeResponse(200, {"access_token": "tok-1", "expires_in": 30}),
            FakeResponse(200, {"access_token": "tok-2", "expires_in": 3600}),
        ]
    )
    tokens = OAuthRefreshTokenSource("cid", "secret", "refresh", session=session)

    assert tokens.access_token() == "tok-1"
    # expires within the refresh margin, so the next call refreshes
    assert tokens.access_token() == "tok-2"


def test_oauth_token_refresh_failure():
    session = FakeTokenSession([FakeResponse(400, {"error": "invalid_grant"})])
    tokens = OAuthRefreshTokenSource("cid", "secret", "revoked", session=session)

    with pytest.raises(StorageError, match="400"):
        tokens.access_token()
