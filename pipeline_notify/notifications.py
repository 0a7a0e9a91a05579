"""Fan-out of pipeline events to the configured notification channels."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from pipeline_notify.errors import ChannelError
from pipeline_notify.messages import format_message
from pipeline_notify.models import (
    Channel,
    DispatchResult,
    MessengerConfig,
    PipelineEventDetail,
    SettlementStatus,
)
from pipeline_notify.sinks import HttpSink, Mailer

logger = logging.getLogger(__name__)


class BackgroundDispatch:
    """Owns fire-and-forget dispatches until they settle."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, sends: Awaitable[list[DispatchResult]]) -> asyncio.Task:
        task = asyncio.ensure_future(sends)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background dispatch cancelled")
            return
        if task.exception() is not None:
            logger.error(f"Background dispatch failed: {task.exception()!r}")
            return
        for result in task.result():
            log_settlement(result)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding dispatch to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def log_settlement(result: DispatchResult) -> None:
    extra = {
        "channel": result.channel.value,
        "status": result.status.value,
        "status_code": result.status_code,
        "reason": result.reason,
    }
    if result.ok:
        logger.info(f"Notification delivered via {result.channel.value}", extra=extra)
    else:
        logger.warning(f"Notification via {result.channel.value} failed: {result.reason}", extra=extra)


class Notifications:
    def __init__(
        self,
        messenger_config: MessengerConfig,
        title: str,
        http_sink: HttpSink,
        mailer: Mailer | None = None,
        timeout: float | None = 30.0,
    ):
        self.messenger_config = messenger_config
        self.title = title
        self.http_sink = http_sink
        self.mailer = mailer
        self.timeout = timeout
        self.background = BackgroundDispatch()

    async def webhook(self, url: str | None, body: dict[str, Any]) -> int:
        """POST a payload to a webhook; anything but HTTP 200 is a ChannelError."""
        if not url:
            raise ChannelError("Missing webhook URL")
        response = await self.http_sink.post(url, body)
        if response.status_code != 200:
            raise ChannelError(
                response.reason or f"HTTP {response.status_code}", response_status=response.status_code
            )
        return response.status_code

    async def notify_slack(self, detail: PipelineEventDetail, title: str | None = None) -> int:
        message = format_message(detail, title or self.title)
        logger.debug(f"Notify slack with message: {message.slack}")
        return await self.webhook(self.messenger_config.slack_webhook, message.slack)

    async def notify_teams(self, detail: PipelineEventDetail, title: str | None = None) -> int:
        message = format_message(detail, title or self.title)
        logger.debug(f"Notify teams with message: {message.teams}")
        return await self.webhook(self.messenger_config.teams_webhook, message.teams)

    async def notify_email(self, detail: PipelineEventDetail, title: str | None = None) -> int:
        if self.mailer is None:
            raise ChannelError("Email channel has no mailer configured")
        message = format_message(detail, title or self.title)
        logger.debug(f"Notify email with message: {message.email}")
        return await self.mailer.send(self.messenger_config.teams_email, message.title, message.email)

    def _sender(self, channel: Channel) -> Callable[[PipelineEventDetail], Awaitable[int]]:
        match channel:
            case Channel.SLACK:
                return self.notify_slack
            case Channel.TEAMS:
                return self.notify_teams
            case Channel.EMAIL:
                return self.notify_email
            case _:
                raise ValueError(f"Unknown channel: {channel}")

    async def _settle(self, channel: Channel, detail: PipelineEventDetail) -> DispatchResult:
        send = self._sender(channel)
        try:
            async with asyncio.timeout(self.timeout):
                status_code = await send(detail)
        except TimeoutError:
            return DispatchResult(
                channel=channel, status=SettlementStatus.REJECTED, reason=f"timed out after {self.timeout}s"
            )
        except ChannelError as e:
            return DispatchResult(
                channel=channel, status=SettlementStatus.REJECTED, status_code=e.response_status, reason=e.message
            )
        except Exception as e:
            return DispatchResult(
                channel=channel, status=SettlementStatus.REJECTED, reason=str(e) or type(e).__name__
            )
        return DispatchResult(channel=channel, status=SettlementStatus.FULFILLED, status_code=status_code)

    async def send_all(self, details: Iterable[PipelineEventDetail]) -> list[DispatchResult]:
        """Attempt every configured channel once per event, concurrently."""
        sends = [
            self._settle(channel, detail)
            for detail in details
            for channel in self.messenger_config.channels
        ]
        return list(await asyncio.gather(*sends))

    async def dispatch(
        self, details: list[PipelineEventDetail], wait_response: bool = False
    ) -> list[DispatchResult] | bool:
        if wait_response:
            results = await self.send_all(details)
            for result in results:
                log_settlement(result)
            return results

        self.background.schedule(self.send_all(details))
        return True
