from __future__ import annotations
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from urllib.parse import urlencode

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"


def build_authorize_url(*, client_id: str, redirect_uri: str, state: str, scope: str = DRIVE_SCOPE) -> str:
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "state": state,
        # offline + consent so Google always hands back a refresh token
        "access_type": "offline",
        "prompt": "consent",
        "include_granted_scopes": "true",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def _token_payload(payload: dict, refresh_token: Optional[str] = None) -> Dict:
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=payload.get("expires_in", 3600))
    return {
        "access_token": payload.get("access_token"),
        # Refresh responses omit the refresh token; keep the one we already have
        "refresh_token": payload.get("refresh_token") or refresh_token,
        "expires_at": expires_at,
        "scope": payload.get("scope"),
        "token_type": payload.get("token_type"),
    }


async def exchange_code_for_tokens_async(
    *, client_id: str, client_secret: str, code: str, redirect_uri: str
) -> Dict:
    async with httpx.AsyncClient(timeout=30) as client:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
        }
        resp = await client.post(TOKEN_URL, data=data)
        resp.raise_for_status()
        return _token_payload(resp.json())


async def refresh_tokens_async(*, client_id: str, client_secret: str, refresh_token: str) -> Dict:
    async with httpx.AsyncClient(timeout=30) as client:
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        resp = await client.post(TOKEN_URL, data=data)
        resp.raise_for_status()
        return _token_payload(resp.json(), refresh_token=refresh_token)


def parse_expires_at(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        if value.endswith("Z"):
            value = value.replace("Z", "+00:00")
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    # Treat timezone-naive as UTC
    if getattr(value, "tzinfo", None) is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class GoogleTokenManager:
    """Reads and writes OAuth tokens in a local JSON file and refreshes them on demand."""

    def __init__(
        self,
        credentials_file: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
    ):
        self.credentials_file = credentials_file or settings.GOOGLE_CREDENTIALS_FILE
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
        self.credentials: dict | None = None
        self.load_credentials()

    def load_credentials(self) -> None:
        try:
            with open(self.credentials_file, "r") as f:
                self.credentials = json.load(f)
        except FileNotFoundError:
            self.credentials = None

    def save_credentials(self) -> None:
        if self.credentials:
            with open(self.credentials_file, "w") as f:
                json.dump(self.credentials, f, indent=2)

    def store_tokens(self, token_info: dict) -> None:
        expires_at = token_info.get("expires_at")
        if hasattr(expires_at, "isoformat"):
            expires_at = expires_at.isoformat()
        self.credentials = {
            "access_token": token_info.get("access_token"),
            "refresh_token": token_info.get("refresh_token"),
            "expires_at": expires_at,
            "scope": token_info.get("scope"),
            "token_type": token_info.get("token_type"),
        }
        self.save_credentials()

    def _is_token_expired(self) -> bool:
        if not self.credentials:
            return True
        expires_at = parse_expires_at(self.credentials.get("expires_at"))
        if expires_at is None:
            return True
        # Refresh 5 minutes early
        return datetime.now(timezone.utc) >= (expires_at - timedelta(minutes=5))

    def refresh_access_token(self) -> bool:
        if not self.credentials or not self.credentials.get("refresh_token"):
            return False
        from connectors.registry import get_connector

        try:
            tok = get_connector("google_drive").refresh_tokens(
                client_id=self.client_id,
                client_secret=self.client_secret,
                refresh_token=self.credentials["refresh_token"],
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to refresh Google access token: {e}")
            return False
        self.credentials["access_token"] = tok["access_token"]
        if tok.get("refresh_token"):
            self.credentials["refresh_token"] = tok["refresh_token"]
        self.credentials["expires_at"] = tok["expires_at"].isoformat()
        self.save_credentials()
        return True

    def get_valid_access_token(self) -> str | None:
        if not self.credentials:
            return None
        if self._is_token_expired():
            if not self.refresh_access_token():
                return None
        return self.credentials.get("access_token")
