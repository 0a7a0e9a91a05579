"""Channel renderings of a pipeline event."""

from html import escape
from typing import Any

from pydantic import BaseModel

from pipeline_notify.models import EventStatus, PipelineEventDetail

NEUTRAL_COLOR = "808080"

# Rendered in this order; url/url_text are rendered separately as a link
MESSAGE_FIELDS = ("status", "date", "name", "target", "type")


class FormattedMessage(BaseModel):
    title: str
    slack: dict[str, Any]
    email: str
    teams: dict[str, Any]


def status_color(status: EventStatus | str) -> str:
    match status:
        case EventStatus.STARTED:
            return "00c63f"
        case EventStatus.ENDED:
            return "0072C6"
        case EventStatus.WAITING:
            return "FFA500"
        case _:
            return NEUTRAL_COLOR


def _field_values(detail: PipelineEventDetail) -> list[tuple[str, str]]:
    values = []
    for field in MESSAGE_FIELDS:
        value = getattr(detail, field)
        if not value:
            continue
        values.append((field.upper(), str(getattr(value, "value", value))))
    return values


def format_message(detail: PipelineEventDetail, title: str) -> FormattedMessage:
    """Render one event for Slack, email (HTML) and Teams."""
    fields = _field_values(detail)
    color = status_color(detail.status)

    slack_lines = [f"*{label}*: {value}" for label, value in fields]
    teams_lines = list(slack_lines)
    html_lines = [f"<b>{label}</b>: {escape(value)}" for label, value in fields]

    slack_lines.append(f"*URL*: <{detail.url}|{detail.url_text}>")
    teams_lines.append(f"*URL*: [{detail.url_text}]({detail.url})")
    html_lines.append(f'<b>URL</b>: <a href="{escape(detail.url)}">{escape(detail.url_text)}</a>')

    return FormattedMessage(
        title=title,
        slack={
            "text": "",
            "attachments": [
                {
                    "color": f"#{color}",
                    "blocks": [
                        {
                            "type": "section",
                            "text": {"type": "mrkdwn", "text": f"{title}:\n" + "\n".join(slack_lines)},
                        }
                    ],
                }
            ],
        },
        email="<br/>".join(html_lines),
        teams={
            "@context": "https://schema.org/extensions",
            "@type": "MessageCard",
            "themeColor": color,
            "title": title,
            "text": f"{title}:\n" + "\n".join(teams_lines),
        },
    )
