"""Outbound delivery seams: webhook POSTs and mail sends."""

from typing import Any, Protocol

import httpx

from pipeline_notify.models import SinkResponse


class HttpSink(Protocol):
    async def post(self, url: str, body: dict[str, Any]) -> SinkResponse: ...


class Mailer(Protocol):
    async def send(self, to: str, subject: str, body: str) -> int: ...


class WebhookSink:
    """POSTs JSON payloads to incoming-webhook URLs (Slack, Teams)."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def post(self, url: str, body: dict[str, Any]) -> SinkResponse:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(url, json=body)
        return SinkResponse(status_code=response.status_code, reason=response.reason_phrase)
