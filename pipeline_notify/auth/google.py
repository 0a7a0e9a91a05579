"""Google OAuth 2.0 helpers and the Gmail credential owner."""

import asyncio
import json
import logging
import time
from pathlib import Path
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from pipeline_notify.config import Settings
from pipeline_notify.errors import ConfigError
from pipeline_notify.files import data_file_path, load_json_data, save_json_data

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

GMAIL_SEND_SCOPES = [
    "https://www.googleapis.com/auth/gmail.send",
]

TOKEN_FILENAME = "google-token.json"
CREDENTIALS_FILENAME = "google-credentials.json"


class TokenData(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_at: int
    token_type: str = "Bearer"
    scope: str | None = None


class GoogleOAuth:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: list[str] | None = None,
        token_url: str = GOOGLE_TOKEN_URL,
        auth_url: str = GOOGLE_AUTH_URL,
        timeout: float = 30.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = scopes or GMAIL_SEND_SCOPES
        self.token_url = token_url
        self.auth_url = auth_url
        self.timeout = timeout

    @classmethod
    def from_credentials_file(cls, path: Path, scopes: list[str] | None = None) -> "GoogleOAuth":
        """Build from a Google Cloud "installed app" credentials download."""
        data = json.loads(path.read_text(encoding="utf-8"))
        installed = data.get("installed") or data.get("web")
        if not installed:
            raise ConfigError(f"Unrecognized Google credentials file: {path}")
        return cls(
            client_id=installed["client_id"],
            client_secret=installed["client_secret"],
            redirect_uri=(installed.get("redirect_uris") or [""])[0],
            scopes=scopes,
            token_url=installed.get("token_uri", GOOGLE_TOKEN_URL),
            auth_url=installed.get("auth_uri", GOOGLE_AUTH_URL),
        )

    def get_auth_url(self, state: str | None = None, login_hint: str | None = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        if login_hint:
            params["login_hint"] = login_hint

        return f"{self.auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenData:
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.token_url, data=payload)
            response.raise_for_status()
            data = response.json()

        expires_at = int(time.time()) + data.get("expires_in", 3600)

        return TokenData(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=expires_at,
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope"),
        )

    async def refresh_token(self, refresh_token: str) -> TokenData:
        payload = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.token_url, data=payload)
            response.raise_for_status()
            data = response.json()

        expires_at = int(time.time()) + data.get("expires_in", 3600)

        return TokenData(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", refresh_token),
            expires_at=expires_at,
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope"),
        )

    def is_token_expired(self, token: TokenData, buffer_seconds: int = 60) -> bool:
        return time.time() >= (token.expires_at - buffer_seconds)


def load_google_oauth(settings: Settings) -> GoogleOAuth:
    """Prefer google-credentials.json in the data directory, else settings."""
    path = data_file_path(CREDENTIALS_FILENAME, settings.data_path)
    if path.is_file():
        oauth = GoogleOAuth.from_credentials_file(path)
        oauth.timeout = settings.sink_timeout
        return oauth
    return GoogleOAuth(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        timeout=settings.sink_timeout,
    )


class TokenStore:
    """google-token.json in the data directory."""

    def __init__(self, data_path: str | None = None, filename: str = TOKEN_FILENAME):
        self.data_path = data_path
        self.filename = filename

    def load(self) -> TokenData | None:
        data = load_json_data(self.filename, self.data_path)
        return TokenData.model_validate(data) if data else None

    def save(self, token: TokenData) -> None:
        save_json_data(self.filename, token.model_dump(), self.data_path)


class CredentialManager:
    """Single owner of the Gmail access token.

    Reads, refreshes and rewrites of the token happen under one lock, so
    concurrent sends never race a refresh or the token file write.
    """

    def __init__(self, oauth: GoogleOAuth, store: TokenStore, refresh_token: str = ""):
        self.oauth = oauth
        self.store = store
        self.fallback_refresh_token = refresh_token
        self._token: TokenData | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialManager":
        return cls(
            oauth=load_google_oauth(settings),
            store=TokenStore(settings.data_path),
            refresh_token=settings.google_refresh_token,
        )

    async def get_access_token(self) -> str:
        async with self._lock:
            if self._token is None:
                self._token = self.store.load()

            if self._token is None or self.oauth.is_token_expired(self._token):
                refresh_token = (self._token and self._token.refresh_token) or self.fallback_refresh_token
                if not refresh_token:
                    raise ConfigError("Google token not available; run scripts/get_token.py")
                logger.info("Google access token expired, refreshing")
                self._token = await self.oauth.refresh_token(refresh_token)
                self.store.save(self._token)

            return self._token.access_token

    async def invalidate(self) -> None:
        """Force the next get_access_token() to refresh."""
        async with self._lock:
            if self._token is not None:
                self._token = self._token.model_copy(update={"expires_at": 0})

    async def save_from_code(self, code: str) -> TokenData:
        token = await self.oauth.exchange_code(code)
        async with self._lock:
            self._token = token
            self.store.save(token)
        return token
