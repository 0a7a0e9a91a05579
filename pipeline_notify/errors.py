"""Error taxonomy and shared error-parsing utilities."""

import json


class NotifyError(Exception):
    """Base class for errors surfaced to the webhook caller."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(NotifyError):
    """Missing or invalid signature or key."""

    status_code = 401


class ParseError(NotifyError):
    """Request body is not valid (optionally base64-encoded) JSON."""

    status_code = 400


class ConfigError(NotifyError):
    """No channel configured, unsupported timezone, missing credentials."""

    status_code = 503


class ValidationError(NotifyError):
    """Empty batch, client id mismatch, or no canonical events."""

    status_code = 422


class ChannelError(NotifyError):
    """A single sink reported a non-success outcome.

    `response_status` is the sink's own HTTP status, when it answered at all.
    """

    status_code = 502

    def __init__(self, message: str, response_status: int | None = None):
        super().__init__(message)
        self.response_status = response_status


def parse_google_error(response_text: str) -> str:
    """Extract a readable message from a Google API error response.

    Google APIs return JSON like {"error": {"code": 400, "message": "...", "status": "..."}}.
    Returns "STATUS: message" when parseable, raw text otherwise.
    """
    try:
        body = json.loads(response_text)
        err = body.get("error", {})
        msg = err.get("message", "")
        status = err.get("status", "")
        if msg:
            return f"{status}: {msg}" if status else msg
    except (ValueError, AttributeError):
        pass
    return response_text
