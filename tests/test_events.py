import json
from unittest.mock import patch

import pytest

from pipeline_notify.errors import ConfigError, ValidationError
from pipeline_notify.events import (
    EVENT_KINDS,
    PIPELINE_OBJECT_TYPE,
    EventNormalizer,
    PipelineDataset,
    find_event_kind,
)
from pipeline_notify.models import EventStatus, RawEvent
from tests.helpers import (
    CLIENT_ID,
    ENDED_TYPE,
    WAITING_TYPE,
    make_batch,
    make_event,
    make_waiting_event,
)


@pytest.fixture
def normalizer(dataset) -> EventNormalizer:
    return EventNormalizer("acme", CLIENT_ID, dataset)


class TestRegistry:
    def test_three_unique_kinds(self):
        pairs = {(k.type, k.object_type) for k in EVENT_KINDS}
        assert len(pairs) == 3
        assert {k.status for k in EVENT_KINDS} == set(EventStatus)

    def test_waiting_requires_step_state_object_type(self):
        assert find_event_kind(WAITING_TYPE, PIPELINE_OBJECT_TYPE) is None


class TestClassify:
    def test_started_event_enriched(self, normalizer):
        detail = normalizer.classify(make_event())

        assert detail.status == EventStatus.STARTED
        assert detail.date == "15.01.2025, 11:30:00 CET"
        assert detail.url_text == "program/111/pipeline/222/execution/999"
        assert detail.url == (
            "https://experience.adobe.com/#/@acme/cloud-manager/pipelineexecution.html/"
            "program/111/pipeline/222/execution/999"
        )
        assert (detail.name, detail.target, detail.type) == ("Production Deploy", "PROD", "CI_CD")

    def test_ended_and_waiting(self, normalizer):
        assert normalizer.classify(make_event(ENDED_TYPE)).status == EventStatus.ENDED
        assert normalizer.classify(make_waiting_event("333")).status == EventStatus.WAITING

    def test_unknown_pipeline_omits_optional_fields(self, normalizer):
        detail = normalizer.classify(make_event(pipeline="exec123"))

        assert detail.status == EventStatus.STARTED
        assert "exec123" in detail.url_text
        assert detail.model_dump(exclude_none=True).keys() == {"status", "date", "url", "url_text"}

    @pytest.mark.parametrize(
        "event",
        [
            make_event(event_type="https://ns.adobe.com/experience/cloudmanager/event/deleted"),
            make_event(object_type="https://ns.adobe.com/experience/cloudmanager/program"),
            make_event(event_type=WAITING_TYPE),
            {},
            None,
            "not an event",
        ],
    )
    def test_unregistered_events_return_none(self, normalizer, event):
        assert normalizer.classify(event) is None

    def test_missing_object_id_returns_none(self, normalizer):
        event = make_event()
        del event["activitystreams:object"]
        assert normalizer.classify(event) is None

    def test_unparseable_published_returns_none(self, normalizer):
        assert normalizer.classify(make_event(published="yesterday")) is None

    def test_accepts_raw_event_model(self, normalizer):
        raw = RawEvent.model_validate(make_event())
        assert normalizer.classify(raw).status == EventStatus.STARTED

    def test_object_id_without_api_prefix(self, normalizer):
        event = make_event()
        event["activitystreams:object"]["@id"] = "program/111/pipeline/333/execution/1"
        detail = normalizer.classify(event)
        assert detail.url_text == "program/111/pipeline/333/execution/1"
        assert detail.name == "Dev Build"

    def test_configured_timezone(self, dataset):
        normalizer = EventNormalizer("acme", None, dataset, timezone="est")
        assert normalizer.classify(make_event()).date == "01/15/2025, 05:30:00 EST"

    def test_unsupported_timezone_rejected_at_construction(self, dataset):
        with pytest.raises(ConfigError):
            EventNormalizer("acme", None, dataset, timezone="pst")


class TestValidateBatch:
    def test_client_id_mismatch_processes_nothing(self, normalizer):
        with patch.object(normalizer, "classify") as classify:
            with pytest.raises(ValidationError, match="Invalid client ID"):
                normalizer.validate_batch(make_batch(make_event(), client_id="someone-else"))
        classify.assert_not_called()

    def test_missing_client_id_when_expected(self, normalizer):
        with pytest.raises(ValidationError, match="Invalid client ID"):
            normalizer.validate_batch(make_batch(make_event(), client_id=None))

    def test_client_id_check_disabled(self, dataset):
        normalizer = EventNormalizer("acme", "", dataset)
        assert len(normalizer.validate_batch(make_batch(make_event(), client_id=None))) == 1

    @pytest.mark.parametrize("body", [{"recipient_client_id": CLIENT_ID}, make_batch(), {"events": "x"}])
    def test_no_events(self, normalizer, body):
        with pytest.raises(ValidationError, match="No events found"):
            normalizer.validate_batch(body)

    @pytest.mark.parametrize("body", [None, [], "events"])
    def test_non_object_body_has_no_events(self, dataset, body):
        normalizer = EventNormalizer("acme", None, dataset)
        with pytest.raises(ValidationError, match="No events found"):
            normalizer.validate_batch(body)

    def test_no_valid_events(self, normalizer):
        body = make_batch(make_event(event_type="https://example.com/other"))
        with pytest.raises(ValidationError, match="No Valid events found"):
            normalizer.validate_batch(body)

    def test_invalid_items_dropped_order_kept(self, normalizer):
        body = make_batch(
            make_event(ENDED_TYPE),
            make_event(event_type="https://example.com/other"),
            make_waiting_event(),
            make_event(),
        )
        body["events"].append({"not_an_event": True})

        details = normalizer.validate_batch(body)

        assert [d.status for d in details] == [EventStatus.ENDED, EventStatus.WAITING, EventStatus.STARTED]
        assert len(details) <= len(body["events"])

    def test_single_event_wrapper(self, normalizer):
        body = {"event_id": "1", "event": make_event(), "recipient_client_id": CLIENT_ID}
        details = normalizer.validate_batch(body)
        assert len(details) == 1


class TestPipelineDataset:
    def test_loads_from_data_directory(self, tmp_path):
        (tmp_path / "pipelines-data.json").write_text(
            json.dumps(
                [
                    {"id": 42, "name": "Numeric", "buildTarget": "STAGE", "type": "CI_CD"},
                    {"name": "no id"},
                    {"id": "7", "name": "Seven"},
                ]
            )
        )
        dataset = PipelineDataset(str(tmp_path))

        assert [r.id for r in dataset.records] == ["42", "7"]
        assert dataset.find("42").build_target == "STAGE"
        assert dataset.find("404") is None
        assert dataset.find(None) is None

    def test_missing_file_is_empty(self, tmp_path):
        assert PipelineDataset(str(tmp_path)).records == []

    def test_non_list_file_is_empty(self, tmp_path):
        (tmp_path / "pipelines-data.json").write_text('{"id": "1"}')
        assert PipelineDataset(str(tmp_path)).records == []

    @pytest.mark.parametrize("content", [b"[{not json", b"\xff\xfe[]"])
    def test_malformed_file_is_empty(self, tmp_path, content):
        (tmp_path / "pipelines-data.json").write_bytes(content)
        assert PipelineDataset(str(tmp_path)).records == []

    def test_malformed_file_does_not_reject_events(self, tmp_path):
        (tmp_path / "pipelines-data.json").write_text("[{not json")
        normalizer = EventNormalizer("acme", None, PipelineDataset(str(tmp_path)))

        [detail] = normalizer.validate_batch(make_batch(make_event(), client_id=None))

        assert detail.status == EventStatus.STARTED
        assert detail.name is None

    def test_loaded_once(self, tmp_path):
        path = tmp_path / "pipelines-data.json"
        path.write_text(json.dumps([{"id": "1", "name": "first"}]))
        dataset = PipelineDataset(str(tmp_path))
        assert dataset.find("1").name == "first"

        path.write_text(json.dumps([{"id": "1", "name": "second"}]))
        assert dataset.find("1").name == "first"
