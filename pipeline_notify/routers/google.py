"""Google OAuth flow for the email channel."""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from pipeline_notify.auth.google import CredentialManager
from pipeline_notify.config import Settings
from pipeline_notify.dependencies import get_credential_manager, get_settings
from pipeline_notify.errors import parse_google_error

logger = logging.getLogger(__name__)
router = APIRouter()


class AuthUrlResponse(BaseModel):
    url: str


class TokenSavedResponse(BaseModel):
    saved: bool
    expires_at: int
    has_refresh_token: bool


@router.get("/auth", response_model=AuthUrlResponse)
async def initiate_oauth(
    state: str | None = Query(default=None),
    settings: Settings = Depends(get_settings),
    credentials: CredentialManager = Depends(get_credential_manager),
):
    """Return the consent URL granting gmail.send to EMAIL_FROM."""
    if not credentials.oauth.client_id:
        raise HTTPException(503, "Google OAuth credentials not configured")
    return AuthUrlResponse(url=credentials.oauth.get_auth_url(state=state, login_hint=settings.email_from or None))


@router.get("/callback", response_model=TokenSavedResponse)
async def oauth_callback(
    code: str = Query(..., min_length=1),
    credentials: CredentialManager = Depends(get_credential_manager),
):
    """Exchange the authorization code and store the token file."""
    try:
        token = await credentials.save_from_code(code)
    except httpx.HTTPStatusError as e:
        logger.error(f"Google token exchange failed: {e.response.status_code}")
        raise HTTPException(502, f"Google token exchange failed: {parse_google_error(e.response.text)}")

    return TokenSavedResponse(
        saved=True,
        expires_at=token.expires_at,
        has_refresh_token=bool(token.refresh_token),
    )
