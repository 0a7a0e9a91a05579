"""Application configuration via pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from pipeline_notify.models import MessengerConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:3001"]
    webhook_rate_limit: str = "60/minute"

    # Channels (any subset may be configured)
    slack_webhook: str = ""
    teams_webhook: str = ""
    teams_email: str = ""

    # Cloud Manager
    organization_name: str = ""
    client_id: str = ""  # expected recipient_client_id; empty disables the check
    title: str = "Cloud Manager Pipeline Notification"
    timezone: str = "cet"
    data_path: str = ".data"

    # Signature verification: HMAC secret, PEM public key, or path to a PEM file
    secret: str = ""
    signature_header: str = "x-adobe-signature"
    verify_signature: bool = True
    wait_response: bool = False

    # Outbound sends
    sink_timeout: float = 30.0

    # Email (Gmail API)
    email_from: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:8080"
    google_refresh_token: str = ""

    def messenger_config(self) -> MessengerConfig:
        return MessengerConfig(
            slack_webhook=self.slack_webhook or None,
            teams_webhook=self.teams_webhook or None,
            teams_email=self.teams_email or None,
        )
