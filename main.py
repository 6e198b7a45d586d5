"""
Study documents storage API – FastAPI application entrypoint.

Size-routed uploads: files >= 10 MB go to Google Drive (when configured), smaller files to
Supabase Storage. A failed Drive upload falls back to Supabase. Deletes are best-effort.

Run locally:
  uvicorn main:app --host 127.0.0.1 --port 8000 --reload

Environment: see .env.example and app.config.Settings.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the app root (directory containing main.py) so credentials are found
# regardless of current working directory when uvicorn is started.
_APP_DIR = Path(__file__).resolve().parent
load_dotenv(_APP_DIR / ".env")

# Resolve a relative service account key path against this app dir.
_sa_file = os.environ.get("GOOGLE_SERVICE_ACCOUNT_FILE")
if _sa_file:
    _sa_path = Path(_sa_file)
    if not _sa_path.is_absolute():
        os.environ["GOOGLE_SERVICE_ACCOUNT_FILE"] = str((_APP_DIR / _sa_path).resolve())

import logging
import sys
from contextlib import asynccontextmanager

from app.config import get_settings

# Uvicorn can override root logging; configure the "app" logger explicitly so storage events always output.
_log_fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
_app_logger = logging.getLogger("app")
_app_logger.setLevel(logging.INFO)
if not _app_logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setLevel(logging.INFO)
    _handler.setFormatter(_log_fmt)
    _app_logger.addHandler(_handler)
_log_file = get_settings().log_file
if _log_file:
    try:
        _file_handler = logging.FileHandler(_APP_DIR / _log_file, encoding="utf-8")
        _file_handler.setLevel(logging.INFO)
        _file_handler.setFormatter(_log_fmt)
        _app_logger.addHandler(_file_handler)
    except OSError as e:  # e.g. read-only filesystem
        _app_logger.warning("File logging disabled: %s", e)
# Do not propagate so each log is only handled once.
_app_logger.propagate = False
logger = _app_logger

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from app import __version__
from app.routers import health, storage
from app.services.storage_router import get_storage_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: build the storage router. A misconfigured Supabase stops the app from starting."""
    router = get_storage_router()
    logger.info(
        "Storage ready: primary=supabase secondary=%s",
        "gdrive" if router.secondary_configured else "none",
    )
    yield


OPENAPI_TAGS = [
    {"name": "Health", "description": "Service health and provider configuration."},
    {"name": "Storage", "description": "Upload (size-routed with fallback), delete, Google Drive OAuth setup."},
]

app = FastAPI(
    title="Study Documents Storage",
    description="Routes uploads to Supabase Storage or Google Drive by size, with fallback to Supabase.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", include_in_schema=False)
def _root():
    """Redirect browser visitors to API docs."""
    return RedirectResponse(url="/docs", status_code=302)


app.include_router(storage.router)
app.include_router(health.router)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
