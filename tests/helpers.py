"""Builders for Cloud Manager events, batches, signatures and settings."""

import hashlib
import hmac
import json
from typing import Any

from pipeline_notify.config import Settings
from pipeline_notify.events import PIPELINE_OBJECT_TYPE, STEP_STATE_OBJECT_TYPE

STARTED_TYPE = "https://ns.adobe.com/experience/cloudmanager/event/started"
ENDED_TYPE = "https://ns.adobe.com/experience/cloudmanager/event/ended"
WAITING_TYPE = "https://ns.adobe.com/experience/cloudmanager/event/waiting"

API_URL = "https://cloudmanager.adobe.io/api/program/111/pipeline/{pipeline}/execution/999"
SECRET = "s3cret"
CLIENT_ID = "client-abc"


def make_event(
    event_type: str = STARTED_TYPE,
    object_type: str = PIPELINE_OBJECT_TYPE,
    pipeline: str = "222",
    published: str = "2025-01-15T10:30:00.000Z",
) -> dict[str, Any]:
    return {
        "@id": "urn:oeid:cloudmanager:event-1",
        "@type": event_type,
        "xdmEventEnvelope:objectType": object_type,
        "activitystreams:published": published,
        "activitystreams:object": {
            "@id": API_URL.format(pipeline=pipeline),
            "@type": object_type,
        },
    }


def make_waiting_event(pipeline: str = "222") -> dict[str, Any]:
    return make_event(WAITING_TYPE, STEP_STATE_OBJECT_TYPE, pipeline)


def make_batch(*events: dict[str, Any], client_id: str | None = CLIENT_ID) -> dict[str, Any]:
    body: dict[str, Any] = {"events": [{"event": e} for e in events]}
    if client_id is not None:
        body["recipient_client_id"] = client_id
    return body


def hmac_signature(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def encode(body: dict[str, Any]) -> bytes:
    return json.dumps(body).encode()


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "organization_name": "acme",
        "client_id": CLIENT_ID,
        "secret": SECRET,
        "timezone": "cet",
        "data_path": ".data-test",
        "slack_webhook": "",
        "teams_webhook": "",
        "teams_email": "",
        "email_from": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
