"""Shared fixtures for the pipeline-notify tests."""

from unittest.mock import AsyncMock

import pytest

from pipeline_notify.events import PipelineDataset
from pipeline_notify.models import PipelineRecord, SinkResponse


@pytest.fixture
def dataset() -> PipelineDataset:
    return PipelineDataset.from_records(
        [
            PipelineRecord(id="222", name="Production Deploy", build_target="PROD", type="CI_CD"),
            {"id": "333", "name": "Dev Build", "buildTarget": "DEV", "type": "CODE_QUALITY"},
        ]
    )


@pytest.fixture
def http_sink() -> AsyncMock:
    sink = AsyncMock()
    sink.post.return_value = SinkResponse(status_code=200, reason="OK")
    return sink


@pytest.fixture
def mailer() -> AsyncMock:
    fake = AsyncMock()
    fake.send.return_value = 200
    return fake
