from datetime import datetime, timezone

import pytest

from pipeline_notify.errors import ConfigError
from pipeline_notify.timezone import convert_utc_to_offset, convert_utc_to_timezone


class TestConvertUtcToTimezone:
    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("cet", "15.01.2025, 11:30:00 CET"),
            ("ist", "15/01/2025, 16:00:00 IST"),
            ("est", "01/15/2025, 05:30:00 EST"),
        ],
    )
    def test_supported_codes(self, code, expected):
        result = convert_utc_to_timezone("2025-01-15T10:30:00Z", code)
        assert result == expected
        assert result.endswith(code.upper())

    def test_default_is_central_european(self):
        assert convert_utc_to_timezone("2025-01-15T10:30:00Z").endswith(" CET")

    def test_daylight_saving_is_applied(self):
        assert convert_utc_to_timezone("2025-07-01T12:00:00Z", "cet") == "01.07.2025, 14:00:00 CET"
        assert convert_utc_to_timezone("2025-07-01T12:00:00Z", "est") == "07/01/2025, 08:00:00 EST"

    def test_code_is_case_insensitive(self):
        assert convert_utc_to_timezone("2025-01-15T10:30:00Z", "IST") == "15/01/2025, 16:00:00 IST"

    def test_accepts_datetimes(self):
        aware = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)
        naive = datetime(2025, 1, 15, 10, 30)
        assert convert_utc_to_timezone(aware, "ist") == convert_utc_to_timezone(naive, "ist")

    @pytest.mark.parametrize("code", ["pst", "utc", ""])
    def test_unsupported_code_raises(self, code):
        with pytest.raises(ConfigError, match="Unsupported timezone"):
            convert_utc_to_timezone("2025-01-15T10:30:00Z", code)


class TestConvertUtcToOffset:
    def test_positive_offset(self):
        assert convert_utc_to_offset("2025-01-15T10:30:00Z", "+05:30") == "2025-01-15 16:00:00 UTC+05:30"

    def test_negative_offset_crosses_midnight(self):
        assert convert_utc_to_offset("2025-01-15T02:00:00Z", "-04:00") == "2025-01-14 22:00:00 UTC-04:00"

    def test_default_offset(self):
        assert convert_utc_to_offset("2025-01-15T10:30:00Z") == "2025-01-15 10:30:00 UTC+00:00"

    @pytest.mark.parametrize("offset", ["0530", "+5:30", "UTC+05:30"])
    def test_malformed_offset_raises(self, offset):
        with pytest.raises(ConfigError):
            convert_utc_to_offset("2025-01-15T10:30:00Z", offset)
