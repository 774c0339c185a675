from __future__ import annotations

import uuid
from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from config.settings import settings
from connectors.google_drive.auth import GoogleTokenManager
from connectors.registry import get_connector, list_connectors
from core.redis import get_redis, load_oauth_state, save_oauth_state

router = APIRouter()


class AuthorizeResponse(BaseModel):
    redirect_url: str


@router.get("/google/start", response_model=AuthorizeResponse)
async def oauth_start(
    desired_return_url: Optional[str] = Query(default=None),
) -> AuthorizeResponse:
    """Initiate OAuth flow for Google Drive and return the provider authorization URL."""
    if "google_drive" not in list_connectors():
        raise HTTPException(status_code=400, detail="Google Drive connector not registered")
    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_ID not configured")
    state = str(uuid.uuid4())

    # Store minimal state in Redis to validate callback and pass through desired return URL
    save_oauth_state(get_redis(), state, {"desired_return_url": desired_return_url or ""})

    drive = get_connector("google_drive")
    url = drive.build_authorize_url(
        client_id=settings.GOOGLE_CLIENT_ID,
        redirect_uri=settings.GOOGLE_REDIRECT_URI,
        state=state,
    )
    return AuthorizeResponse(redirect_url=url)


class CallbackResponse(BaseModel):
    status: str
    redirect_url: Optional[str] = None


@router.get("/google/callback", response_model=CallbackResponse)
async def oauth_callback(code: str, state: str) -> CallbackResponse:
    state_obj = load_oauth_state(get_redis(), state)
    if state_obj is None:
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google client credentials not configured")
    drive = get_connector("google_drive")
    try:
        token_info = await drive.exchange_code_for_tokens_async(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            code=code,
            redirect_uri=settings.GOOGLE_REDIRECT_URI,
        )
    except httpx.HTTPStatusError as e:
        # Surface Google error to client
        raise HTTPException(status_code=e.response.status_code, detail=e.response.text)

    GoogleTokenManager().store_tokens(token_info)

    return CallbackResponse(
        status="connected",
        redirect_url=state_obj.get("desired_return_url") or None,
    )
