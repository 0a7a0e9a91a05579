"""UTC timestamp presentation in the supported notification timezones."""

import re
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from pipeline_notify.errors import ConfigError

# code -> (IANA zone, locale-style date pattern)
TIMEZONES: dict[str, tuple[str, str]] = {
    "cet": ("Europe/Berlin", "%d.%m.%Y, %H:%M:%S"),
    "ist": ("Asia/Kolkata", "%d/%m/%Y, %H:%M:%S"),
    "est": ("America/New_York", "%m/%d/%Y, %H:%M:%S"),
}
DEFAULT_TIMEZONE = "cet"

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):(\d{2})$")


def check_timezone(code: str) -> str:
    """Return the normalized code, or raise ConfigError if unsupported."""
    tz = (code or "").lower()
    if tz not in TIMEZONES:
        raise ConfigError("Unsupported timezone. Use cet, ist, or est.")
    return tz


def _as_utc(utc_timestamp: datetime | str) -> datetime:
    if isinstance(utc_timestamp, str):
        utc_timestamp = datetime.fromisoformat(utc_timestamp.replace("Z", "+00:00"))
    if utc_timestamp.tzinfo is None:
        return utc_timestamp.replace(tzinfo=timezone.utc)
    return utc_timestamp


def convert_utc_to_timezone(utc_timestamp: datetime | str, timezone_code: str = DEFAULT_TIMEZONE) -> str:
    """Format a UTC timestamp as local time in one of the supported zones.

    >>> convert_utc_to_timezone("2025-01-15T10:30:00Z", "ist")
    '15/01/2025, 16:00:00 IST'
    """
    tz = check_timezone(timezone_code)
    zone, pattern = TIMEZONES[tz]
    local = _as_utc(utc_timestamp).astimezone(ZoneInfo(zone))
    return f"{local.strftime(pattern)} {tz.upper()}"


def convert_utc_to_offset(utc_timestamp: datetime | str, utc_offset: str = "+00:00") -> str:
    """Format a UTC timestamp shifted by a fixed `+HH:MM` / `-HH:MM` offset."""
    match = _OFFSET_RE.match(utc_offset)
    if not match:
        raise ConfigError("Invalid UTC offset format. Use format like +05:30 or -04:00.")
    sign = 1 if match.group(1) == "+" else -1
    offset = timedelta(hours=int(match.group(2)), minutes=int(match.group(3))) * sign
    shifted = _as_utc(utc_timestamp).astimezone(timezone.utc) + offset
    return f"{shifted.strftime('%Y-%m-%d %H:%M:%S')} UTC{utc_offset}"
