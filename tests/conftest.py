"""Shared fixtures: in-memory Supabase Storage client and Google Drive REST API."""

import itertools
import logging
import re
from types import SimpleNamespace
from urllib.parse import urlsplit

import pytest

from app.providers.storage.gdrive import DRIVE_API_BASE, DRIVE_UPLOAD_BASE, GoogleDriveStorageProvider
from app.providers.storage.supabase import SupabaseStorageProvider
from app.services.storage_router import ProviderConfig, StorageRouter

MIB = 1024 * 1024
SUPABASE_PROJECT_URL = "https://proj.supabase.co"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: dict | None = None, headers: dict | None = None):
        self.status_code = status_code
        self._payload = payload or {}
        self.headers = headers or {}
        self.text = str(self._payload)

    def json(self) -> dict:
        return self._payload


class FakeDriveSession:
    """Enough of the Drive v3 REST API for folders, resumable uploads, permissions and deletes.

    fail_on: operation names that answer 500 (list, create_folder, start_upload, put, permission, delete).
    """

    def __init__(self) -> None:
        self.files: dict[str, dict] = {}
        self.permissions: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self._ids = itertools.count(1)
        self._pending: dict[str, dict] = {}

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def _fail(self, op: str) -> FakeResponse | None:
        if op in self.fail_on:
            return FakeResponse(500, {"error": f"{op} failed"})
        return None

    def folders_named(self, name: str, parent: str | None = None) -> list[dict]:
        return [
            f
            for f in self.files.values()
            if f["mimeType"] == "application/vnd.google-apps.folder"
            and f["name"] == name
            and (parent is None or parent in f["parents"])
        ]

    def request(self, method, url, headers=None, timeout=None, params=None, json=None, data=None):
        assert headers and headers["Authorization"].startswith("Bearer ")
        assert timeout is not None
        path = urlsplit(url).path
        self.calls.append((method, path))

        if method == "GET" and url == f"{DRIVE_API_BASE}/files":
            return self._fail("list") or self._list(params["q"])
        if method == "POST" and url == f"{DRIVE_API_BASE}/files":
            if fail := self._fail("create_folder"):
                return fail
            folder_id = self._new_id("folder")
            self.files[folder_id] = {
                "id": folder_id,
                "name": json["name"],
                "mimeType": json["mimeType"],
                "parents": json.get("parents", []),
                "trashed": False,
            }
            return FakeResponse(200, {"id": folder_id})
        if method == "POST" and url == f"{DRIVE_UPLOAD_BASE}/files":
            if fail := self._fail("start_upload"):
                return fail
            assert params["uploadType"] == "resumable"
            session_url = f"https://upload.fake/session/{next(self._ids)}"
            self._pending[session_url] = dict(json)
            return FakeResponse(200, {}, headers={"Location": session_url})
        if method == "PUT" and url in self._pending:
            if fail := self._fail("put"):
                return fail
            meta = self._pending.pop(url)
            file_id = self._new_id("file")
            self.files[file_id] = {**meta, "id": file_id, "content": data, "trashed": False}
            return FakeResponse(200, {"id": file_id, "webViewLink": f"https://drive.google.com/file/d/{file_id}/view?usp=drivesdk"})

        match = re.fullmatch(r"/drive/v3/files/([^/]+)(/permissions)?", path)
        if match:
            file_id, permissions = match.groups()
            if permissions and method == "POST":
                if fail := self._fail("permission"):
                    return fail
                self.permissions.setdefault(file_id, []).append(json)
                return FakeResponse(200, {"id": "perm"})
            if method == "DELETE":
                if fail := self._fail("delete"):
                    return fail
                if self.files.pop(file_id, None) is None:
                    return FakeResponse(404, {"error": "notFound"})
                return FakeResponse(204)
            if method == "GET":
                f = self.files.get(file_id)
                if f is None:
                    return FakeResponse(404, {"error": "notFound"})
                return FakeResponse(200, {"id": file_id, "trashed": f["trashed"]})
        return FakeResponse(400, {"error": f"unexpected {method} {url}"})

    def _list(self, q: str) -> FakeResponse:
        name = re.search(r"name='((?:[^'\\]|\\.)*)'", q).group(1).replace("\\'", "'").replace("\\\\", "\\")
        parent = re.search(r"'([^']+)' in parents", q)
        found = self.folders_named(name, parent.group(1) if parent else None)
        return FakeResponse(200, {"files": [{"id": f["id"], "name": f["name"]} for f in found]})


class StaticTokenSource:
    def access_token(self) -> str:
        return "test-access-token"


class FakeBucket:
    def __init__(self, store: dict, name: str, fail_upload: bool = False) -> None:
        self._store = store
        self._name = name
        self._fail_upload = fail_upload

    def upload(self, path, file, file_options=None):
        if self._fail_upload:
            raise RuntimeError("storage unavailable")
        if path in self._store and (file_options or {}).get("upsert") != "true":
            raise RuntimeError("The resource already exists")
        self._store[path] = {"data": file, "options": file_options}
        return SimpleNamespace(path=path, full_path=f"{self._name}/{path}")

    def get_public_url(self, path, options=None):
        return f"{SUPABASE_PROJECT_URL}/storage/v1/object/public/{self._name}/{path}"

    def remove(self, paths):
        return [{"name": p} for p in paths if self._store.pop(p, None) is not None]

    def list(self, path=None, options=None):
        prefix = f"{path}/" if path else ""
        search = (options or {}).get("search", "")
        names = [k[len(prefix):] for k in self._store if k.startswith(prefix)]
        return [{"name": n} for n in names if "/" not in n and search in n]


class FakeSupabaseClient:
    def __init__(self) -> None:
        self.objects: dict[str, dict] = {}
        self.fail_upload = False
        self.storage = SimpleNamespace(from_=self._from)

    def _from(self, bucket: str) -> FakeBucket:
        return FakeBucket(self.objects, bucket, self.fail_upload)


@pytest.fixture
def drive_session() -> FakeDriveSession:
    return FakeDriveSession()


@pytest.fixture
def drive(drive_session) -> GoogleDriveStorageProvider:
    return GoogleDriveStorageProvider(StaticTokenSource(), "root-folder", session=drive_session, timeout=5)


@pytest.fixture
def supabase_client() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest.fixture
def supabase(supabase_client) -> SupabaseStorageProvider:
    return SupabaseStorageProvider(supabase_client, "documents")


@pytest.fixture
def storage_router(supabase, drive) -> StorageRouter:
    """Both providers configured and healthy."""
    return StorageRouter(ProviderConfig(primary=supabase, secondary=drive))


@pytest.fixture
def primary_only_router(supabase) -> StorageRouter:
    return StorageRouter(ProviderConfig(primary=supabase))


@pytest.fixture(autouse=True)
def _propagate_app_logs(monkeypatch):
    """main.py stops the 'app' logger propagating; caplog listens on the root logger."""
    monkeypatch.setattr(logging.getLogger("app"), "propagate", True)
