"""Pydantic models shared across verification, normalization and dispatch."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventStatus(StrEnum):
    STARTED = "started"
    ENDED = "ended"
    WAITING = "waiting"


class Channel(StrEnum):
    SLACK = "slack"
    EMAIL = "email"
    TEAMS = "teams"


class SettlementStatus(StrEnum):
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class IncomingRequest(BaseModel):
    """One inbound webhook delivery.

    `raw_body` is the body exactly as received (possibly base64-encoded JSON);
    `body` is an already-parsed structure when the caller has one.
    """

    headers: dict[str, str] = Field(default_factory=dict)
    raw_body: str | bytes | None = None
    body: Any = None
    public_key: str | None = None

    @field_validator("headers", mode="before")
    @classmethod
    def _lowercase_headers(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k).lower(): v for k, v in value.items()}
        return value

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


class RawEvent(BaseModel):
    """Adobe I/O event envelope for a Cloud Manager event."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_type: str | None = Field(None, alias="@type")
    object_type: str | None = Field(None, alias="xdmEventEnvelope:objectType")
    activity_object: dict[str, Any] | None = Field(None, alias="activitystreams:object")
    published: datetime | None = Field(None, alias="activitystreams:published")

    @property
    def object_id(self) -> str | None:
        if not self.activity_object:
            return None
        value = self.activity_object.get("@id")
        return value if isinstance(value, str) else None


class PipelineRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str
    name: str | None = None
    build_target: str | None = Field(None, alias="buildTarget")
    type: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class PipelineEventDetail(BaseModel):
    """Canonical, enriched pipeline event ready for formatting."""

    status: EventStatus
    date: str
    url: str
    url_text: str = Field(serialization_alias="urlText")
    name: str | None = None
    target: str | None = None
    type: str | None = None


class MessengerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    slack_webhook: str | None = None
    teams_webhook: str | None = None
    teams_email: str | None = None

    @property
    def channels(self) -> list[Channel]:
        channels = []
        if self.slack_webhook:
            channels.append(Channel.SLACK)
        if self.teams_email:
            channels.append(Channel.EMAIL)
        if self.teams_webhook:
            channels.append(Channel.TEAMS)
        return channels


class SinkResponse(BaseModel):
    status_code: int
    reason: str = ""


class DispatchResult(BaseModel):
    """Settlement of one channel send."""

    channel: Channel
    status: SettlementStatus
    status_code: int | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == SettlementStatus.FULFILLED
