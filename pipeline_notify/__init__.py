"""Cloud Manager pipeline event notifications for Slack, Teams and email."""

__version__ = "0.1.0"
