"""Cloud Manager event classification, enrichment and batch validation."""

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from pipeline_notify.errors import ValidationError
from pipeline_notify.files import load_json_data
from pipeline_notify.models import EventStatus, PipelineEventDetail, PipelineRecord, RawEvent
from pipeline_notify.timezone import DEFAULT_TIMEZONE, check_timezone, convert_utc_to_timezone

logger = logging.getLogger(__name__)

CLOUD_MANAGER_API = "https://cloudmanager.adobe.io/api/"
PIPELINE_CONSOLE_URL = "https://experience.adobe.com/#/@{org}/cloud-manager/pipelineexecution.html/{path}"
PIPELINE_DATA_FILENAME = "pipelines-data.json"

PIPELINE_OBJECT_TYPE = "https://ns.adobe.com/experience/cloudmanager/pipeline-execution"
STEP_STATE_OBJECT_TYPE = "https://ns.adobe.com/experience/cloudmanager/execution-step-state"

# Segment of ".../program/{programId}/pipeline/{pipelineId}/..." holding the pipeline id
PIPELINE_ID_SEGMENT = 3


@dataclass(frozen=True)
class EventKind:
    status: EventStatus
    type: str
    object_type: str


EVENT_KINDS: tuple[EventKind, ...] = (
    EventKind(EventStatus.STARTED, "https://ns.adobe.com/experience/cloudmanager/event/started", PIPELINE_OBJECT_TYPE),
    EventKind(EventStatus.ENDED, "https://ns.adobe.com/experience/cloudmanager/event/ended", PIPELINE_OBJECT_TYPE),
    EventKind(EventStatus.WAITING, "https://ns.adobe.com/experience/cloudmanager/event/waiting", STEP_STATE_OBJECT_TYPE),
)


def find_event_kind(event_type: str | None, object_type: str | None) -> EventKind | None:
    for kind in EVENT_KINDS:
        if kind.type == event_type and kind.object_type == object_type:
            return kind
    return None


class PipelineDataset:
    """Read-only snapshot of known pipelines, loaded once from the data directory."""

    def __init__(self, data_path: str | None = None, filename: str = PIPELINE_DATA_FILENAME):
        self.data_path = data_path
        self.filename = filename

    @classmethod
    def from_records(cls, records: list[PipelineRecord | dict]) -> "PipelineDataset":
        dataset = cls()
        dataset.__dict__["records"] = [
            r if isinstance(r, PipelineRecord) else PipelineRecord.model_validate(r) for r in records
        ]
        return dataset

    @cached_property
    def records(self) -> list[PipelineRecord]:
        try:
            data = load_json_data(self.filename, self.data_path)
        except (OSError, ValueError) as e:
            logger.warning(f"Pipeline data file {self.filename} unreadable: {e}")
            return []
        if data is None:
            logger.warning(f"Pipeline data file {self.filename} not found; events will not be enriched")
            return []
        if not isinstance(data, list):
            logger.warning(f"Pipeline data file {self.filename} is not a list; ignoring it")
            return []

        records = []
        for item in data:
            try:
                records.append(PipelineRecord.model_validate(item))
            except PydanticValidationError:
                logger.warning(f"Skipping malformed pipeline record: {item!r}")
        return records

    def find(self, pipeline_id: str | None) -> PipelineRecord | None:
        if not pipeline_id:
            return None
        return next((r for r in self.records if r.id == pipeline_id), None)


class EventNormalizer:
    def __init__(
        self,
        org_name: str,
        client_id: str | None,
        dataset: PipelineDataset,
        timezone: str = DEFAULT_TIMEZONE,
    ):
        self.org_name = org_name
        self.client_id = client_id
        self.dataset = dataset
        self.timezone = check_timezone(timezone)

    def pipeline_url(self, url_path: str) -> str:
        return PIPELINE_CONSOLE_URL.format(org=self.org_name, path=url_path)

    def classify(self, event: RawEvent | dict[str, Any] | None) -> PipelineEventDetail | None:
        """Turn a raw vendor event into a canonical detail, or None if it is not one of ours."""
        if not event:
            logger.info("Event is empty")
            return None
        if isinstance(event, dict):
            try:
                event = RawEvent.model_validate(event)
            except PydanticValidationError as e:
                logger.info(f"Event not valid: {e.error_count()} field error(s)")
                return None
        elif not isinstance(event, RawEvent):
            logger.info(f"Event not valid: unexpected {type(event).__name__}")
            return None

        kind = find_event_kind(event.event_type, event.object_type)
        if kind is None:
            logger.info(f"Event not valid: {event.event_type} {event.object_type}")
            return None

        object_id = event.object_id
        if not object_id or event.published is None:
            logger.info(f"Event {kind.status.value} is missing its object id or published date")
            return None

        if CLOUD_MANAGER_API in object_id:
            url_path = object_id.split(CLOUD_MANAGER_API, 1)[1]
        else:
            url_path = object_id
        parts = url_path.split("/")
        pipeline_id = parts[PIPELINE_ID_SEGMENT] if len(parts) > PIPELINE_ID_SEGMENT else None

        detail = PipelineEventDetail(
            status=kind.status,
            date=convert_utc_to_timezone(event.published, self.timezone),
            url=self.pipeline_url(url_path),
            url_text=url_path,
        )

        pipeline = self.dataset.find(pipeline_id)
        if pipeline is None:
            logger.warning(f"Pipeline not found for ID: {pipeline_id}")
            return detail

        return detail.model_copy(
            update={"name": pipeline.name, "target": pipeline.build_target, "type": pipeline.type}
        )

    def validate_batch(self, request_body: Any) -> list[PipelineEventDetail]:
        """Classify every event of a delivery, keeping only canonical ones.

        Raises ValidationError when the client id does not match, when the
        delivery carries no events, or when none of them is canonical.
        """
        body = request_body if isinstance(request_body, dict) else {}

        if self.client_id and self.client_id != body.get("recipient_client_id"):
            logger.warning(
                f"Unexpected client id. Was expecting length {len(self.client_id)} "
                f"and received {body.get('recipient_client_id')}"
            )
            raise ValidationError("Invalid client ID")

        events = body.get("events")
        if events is None and body.get("event") is not None:
            events = [body]
        if not isinstance(events, list) or not events:
            logger.warning("No events found")
            raise ValidationError("No events found")

        logger.info(f"Events received: {len(events)}")
        valid_events = []
        for item in events:
            if not isinstance(item, dict) or not item.get("event"):
                continue
            detail = self.classify(item["event"])
            if detail is not None:
                valid_events.append(detail)

        if not valid_events:
            logger.warning("No valid events found")
            raise ValidationError("No Valid events found")

        return valid_events
