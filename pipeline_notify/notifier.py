"""Request orchestration: verify, parse, validate, dispatch."""

import base64
import binascii
import json
import logging
import re
from typing import Any

from pipeline_notify.auth.google import CredentialManager
from pipeline_notify.config import Settings
from pipeline_notify.errors import AuthError, ConfigError, ParseError
from pipeline_notify.events import EventNormalizer, PipelineDataset
from pipeline_notify.mailer import GmailMailer
from pipeline_notify.models import DispatchResult, IncomingRequest, PipelineEventDetail
from pipeline_notify.notifications import Notifications
from pipeline_notify.sinks import HttpSink, Mailer, WebhookSink
from pipeline_notify.verify import SignatureVerifier

logger = logging.getLogger(__name__)

_BASE64_RE = re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$")


def is_base64(value: Any) -> bool:
    return isinstance(value, str) and bool(value) and bool(_BASE64_RE.match(value))


def parse_raw_body(raw_body: str | bytes) -> Any:
    """Decode a (possibly base64-encoded) JSON body."""
    try:
        body = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
        if is_base64(body.strip()):
            body = base64.b64decode(body.strip()).decode("utf-8")
        return json.loads(body)
    except (UnicodeDecodeError, binascii.Error, ValueError) as e:
        logger.error(f"Error parsing raw body: {e}")
        raise ParseError("Request body is not valid JSON") from e


class PipelineNotifier:
    """Entry point for one webhook delivery."""

    def __init__(
        self,
        settings: Settings,
        http_sink: HttpSink | None = None,
        mailer: Mailer | None = None,
        dataset: PipelineDataset | None = None,
        credentials: CredentialManager | None = None,
    ):
        self.settings = settings
        self.messenger_config = settings.messenger_config()

        if mailer is None and self.messenger_config.teams_email:
            mailer = GmailMailer(
                settings.email_from,
                credentials or CredentialManager.from_settings(settings),
                timeout=settings.sink_timeout,
            )

        self.verifier = SignatureVerifier(settings.signature_header)
        self.events = EventNormalizer(
            settings.organization_name,
            settings.client_id,
            dataset or PipelineDataset(settings.data_path),
            timezone=settings.timezone,
        )
        self.notifications = Notifications(
            self.messenger_config,
            settings.title,
            http_sink or WebhookSink(settings.sink_timeout),
            mailer,
            timeout=settings.sink_timeout,
        )

    def parse_body(self, request: IncomingRequest) -> Any:
        body = request.raw_body if request.raw_body is not None else request.body
        if not body or not isinstance(body, (str, bytes)):
            return body
        return parse_raw_body(body)

    def validate(self, request_body: Any) -> list[PipelineEventDetail]:
        if not self.messenger_config.channels:
            raise ConfigError("No notification method configured")
        return self.events.validate_batch(request_body)

    async def post(
        self,
        request: IncomingRequest,
        verify: bool = False,
        wait_response: bool = False,
    ) -> list[DispatchResult] | bool:
        """Notify every configured channel about the events in `request`.

        Returns the settlement list when `wait_response` is set, otherwise True
        once the sends are scheduled. Raises AuthError, ParseError, ConfigError
        or ValidationError before anything is sent.
        """
        if verify and not self.verifier.verify(request, self.settings.secret or None):
            raise AuthError("Invalid signature")

        parsed_body = self.parse_body(request)
        valid_events = self.validate(parsed_body)
        logger.info(f"Dispatching {len(valid_events)} event(s) to {len(self.messenger_config.channels)} channel(s)")

        return await self.notifications.dispatch(valid_events, wait_response=wait_response)

    async def aclose(self) -> None:
        await self.notifications.background.drain()
