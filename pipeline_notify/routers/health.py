from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pipeline_notify import __version__
from pipeline_notify.auth.google import CREDENTIALS_FILENAME, TOKEN_FILENAME
from pipeline_notify.config import Settings
from pipeline_notify.dependencies import get_settings
from pipeline_notify.files import data_file_path
from pipeline_notify.verify import load_public_key


router = APIRouter(tags=["health"])

_startup_time = datetime.now(timezone.utc)


class EndpointInfo(BaseModel):
    path: str
    description: str
    provider: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    endpoints: list[EndpointInfo]


class IntegrationStatus(BaseModel):
    connected: bool
    status: str
    last_check: str | None = None


class IntegrationsResponse(BaseModel):
    slack: IntegrationStatus
    teams_webhook: IntegrationStatus
    teams_email: IntegrationStatus
    signature: IntegrationStatus


ENDPOINTS = [
    EndpointInfo(path="/health", description="Service status and API directory"),
    EndpointInfo(path="/health/integrations", description="Channel configuration status"),
    EndpointInfo(path="/webhooks/cloudmanager", description="Pipeline event webhook", provider="Adobe I/O Events"),
    EndpointInfo(path="/google/auth", description="Gmail OAuth consent URL", provider="Google"),
]


def _ok() -> IntegrationStatus:
    return IntegrationStatus(
        connected=True,
        status="ok",
        last_check=datetime.now(timezone.utc).isoformat(),
    )


def _check_webhook(url: str) -> IntegrationStatus:
    if not url:
        return IntegrationStatus(connected=False, status="webhook not configured")
    return _ok()


def _check_email(settings: Settings) -> IntegrationStatus:
    if not settings.teams_email:
        return IntegrationStatus(connected=False, status="recipient not configured")
    if not settings.email_from:
        return IntegrationStatus(connected=False, status="sender (EMAIL_FROM) not configured")

    has_creds = bool(settings.google_client_id and settings.google_client_secret) or data_file_path(
        CREDENTIALS_FILENAME, settings.data_path
    ).is_file()
    has_token = bool(settings.google_refresh_token) or data_file_path(TOKEN_FILENAME, settings.data_path).is_file()

    if not has_creds:
        return IntegrationStatus(connected=False, status="credentials not configured")
    if not has_token:
        return IntegrationStatus(connected=False, status="not authenticated (no token)")
    return _ok()


def _check_signature(settings: Settings) -> IntegrationStatus:
    if not settings.verify_signature:
        return IntegrationStatus(connected=False, status="verification disabled")
    if not settings.secret:
        return IntegrationStatus(connected=False, status="no secret or public key configured")
    kind = "public key" if load_public_key(settings.secret) else "shared secret"
    return IntegrationStatus(connected=True, status=f"ok ({kind})")


@router.get("/health", response_model=HealthResponse)
async def health_check():
    uptime = (datetime.now(timezone.utc) - _startup_time).total_seconds()

    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=round(uptime, 2),
        endpoints=ENDPOINTS,
    )


@router.get("/health/integrations", response_model=IntegrationsResponse)
async def get_integrations(settings: Settings = Depends(get_settings)):
    return IntegrationsResponse(
        slack=_check_webhook(settings.slack_webhook),
        teams_webhook=_check_webhook(settings.teams_webhook),
        teams_email=_check_email(settings),
        signature=_check_signature(settings),
    )
