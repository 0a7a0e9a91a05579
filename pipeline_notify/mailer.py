"""Email channel - Gmail API integration."""

import base64
import logging
from email.mime.text import MIMEText

import httpx

from pipeline_notify.auth.google import CredentialManager
from pipeline_notify.errors import ChannelError, ConfigError, parse_google_error

logger = logging.getLogger(__name__)

GMAIL_API = "https://gmail.googleapis.com/gmail/v1"


def _build_raw_message(from_email: str, to: str, subject: str, body: str) -> str:
    """Build a base64url encoded raw HTML MIME message for the Gmail API."""
    msg = MIMEText(body, "html", "utf-8")
    msg["from"] = from_email
    msg["to"] = to
    msg["subject"] = subject

    return base64.urlsafe_b64encode(msg.as_bytes()).decode("utf-8")


class GmailMailer:
    def __init__(self, from_email: str, credentials: CredentialManager, timeout: float = 30.0):
        if not from_email:
            raise ConfigError("Missing EMAIL_FROM for the email channel")
        self.from_email = from_email
        self.credentials = credentials
        self.timeout = timeout

    async def _post(self, raw: str) -> httpx.Response:
        access_token = await self.credentials.get_access_token()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(
                f"{GMAIL_API}/users/me/messages/send",
                json={"raw": raw},
                headers={"Authorization": f"Bearer {access_token}"},
            )

    async def send(self, to: str, subject: str, body: str) -> int:
        raw = _build_raw_message(self.from_email, to, subject, body)

        response = await self._post(raw)
        if response.status_code == 401:
            await self.credentials.invalidate()
            response = await self._post(raw)

        if response.status_code != 200:
            raise ChannelError(
                f"Gmail API error: {parse_google_error(response.text)}", response_status=response.status_code
            )

        logger.info("Email notification sent")
        return response.status_code
