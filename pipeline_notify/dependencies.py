"""FastAPI dependencies: process-wide settings, credentials and notifier."""

from functools import lru_cache

from pipeline_notify.auth.google import CredentialManager
from pipeline_notify.config import Settings
from pipeline_notify.notifier import PipelineNotifier


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_credential_manager() -> CredentialManager:
    return CredentialManager.from_settings(get_settings())


@lru_cache
def get_notifier() -> PipelineNotifier:
    # Shares the credential manager with the OAuth routes so one owner holds the token
    return PipelineNotifier(get_settings(), credentials=get_credential_manager())
