"""Cloud Manager webhook endpoint - verifies, normalizes and fans out events."""

import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from pipeline_notify.config import Settings
from pipeline_notify.dependencies import get_notifier, get_settings
from pipeline_notify.models import DispatchResult, IncomingRequest
from pipeline_notify.notifier import PipelineNotifier

logger = logging.getLogger(__name__)
router = APIRouter()

limiter = Limiter(key_func=get_remote_address)


class ChallengeResponse(BaseModel):
    challenge: str


class NotifyResponse(BaseModel):
    accepted: bool
    results: list[DispatchResult] | None = None


@router.get("/cloudmanager", response_model=ChallengeResponse)
async def registration_challenge(challenge: str = Query(..., min_length=1)):
    """Echo the Adobe I/O Events registration challenge."""
    return ChallengeResponse(challenge=challenge)


@router.post("/cloudmanager", response_model=NotifyResponse)
@limiter.limit(lambda: get_settings().webhook_rate_limit)
async def cloudmanager_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    notifier: PipelineNotifier = Depends(get_notifier),
):
    """Receive a Cloud Manager event delivery and notify the configured channels."""
    incoming = IncomingRequest(
        headers=dict(request.headers),
        raw_body=await request.body(),
    )

    outcome = await notifier.post(
        incoming,
        verify=settings.verify_signature,
        wait_response=settings.wait_response,
    )

    if isinstance(outcome, list):
        failed = sum(1 for r in outcome if not r.ok)
        if failed:
            logger.warning(f"{failed} of {len(outcome)} notification(s) failed")
        return NotifyResponse(accepted=True, results=outcome)
    return NotifyResponse(accepted=outcome)
