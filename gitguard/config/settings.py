# gitguard/config/settings.py

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "gitguard"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    version: str = "0.1.0"

    # --- Database ---
    # "memory://" selects the in-process store
    database_url: str = "memory://"
    database_echo: bool = False

    # --- Messaging ---
    # Unset: notifications are written to the log instead of published
    rabbitmq_url: Optional[str] = None
    notification_exchange: str = "gitguard.notifications"

    # --- Authorization oracle ---
    oracle_backend: Literal["in_process", "permit"] = "in_process"
    permit_api_url: str = "https://api.permit.io"
    permit_pdp_url: str = "http://localhost:7766"
    permit_api_key: Optional[str] = None
    permit_project: str = "default"
    permit_environment: str = "dev"
    permit_tenant: str = "default"
    oracle_timeout_seconds: float = Field(5.0, gt=0)
    oracle_failure_threshold: int = Field(5, ge=1)
    oracle_recovery_timeout_seconds: float = Field(30.0, gt=0)
    oracle_bootstrap_on_startup: bool = True

    # --- Security ---
    biometric_encryption_key: str = Field(..., min_length=16)

    # --- Observability ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
