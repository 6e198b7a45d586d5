"""One-time Google OAuth flow that yields the Drive refresh token for GOOGLE_OAUTH_REFRESH_TOKEN."""

import logging

import requests

from app.config import get_settings
from app.exceptions import ConfigurationError, StorageError
from app.providers.storage.gdrive import DRIVE_SCOPES, GOOGLE_TOKEN_URL

logger = logging.getLogger("app.drive_oauth")

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"


def _client_credentials() -> tuple[str, str]:
    settings = get_settings()
    if not settings.google_oauth_client_id or not settings.google_oauth_client_secret:
        raise ConfigurationError(
            "Google OAuth is not configured (GOOGLE_OAUTH_CLIENT_ID, GOOGLE_OAUTH_CLIENT_SECRET)"
        )
    return settings.google_oauth_client_id, settings.google_oauth_client_secret


def get_auth_url(redirect_uri: str) -> str:
    """Build the Google consent URL. Offline access + forced consent so Google returns a refresh token."""
    client_id, _ = _client_credentials()
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": " ".join(DRIVE_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
    }
    q = "&".join(f"{k}={requests.utils.quote(str(v), safe='')}" for k, v in params.items())
    return f"{GOOGLE_AUTH_URL}?{q}"


def exchange_code(code: str, redirect_uri: str) -> str:
    """Exchange an authorization code for tokens and return the refresh token."""
    client_id, client_secret = _client_credentials()
    resp = requests.post(
        GOOGLE_TOKEN_URL,
        data={
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        },
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        timeout=30,
    )
    if resp.status_code != 200:
        logger.warning("Google token exchange failed: %s %s", resp.status_code, resp.text[:200])
        raise StorageError(f"Google token exchange failed ({resp.status_code})")
    refresh_token = resp.json().get("refresh_token")
    if not refresh_token:
        raise StorageError("No refresh token returned. Revoke the app's access in your Google account and try again.")
    return refresh_token
