"""Configuration for the troubleshooter.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Nothing here is required: with no configuration the built-in catalog is used and
telemetry is written to the log.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TelemetryBackend = Literal["none", "log", "http"]


class TroubleshooterSettings(BaseSettings):
    """Settings for the troubleshooting engine and its surfaces.

    Environment variables:
    - LOG_LEVEL                                  (optional)
    - TROUBLESHOOTER_CATALOG_PATH                (optional)
    - TROUBLESHOOTER_TELEMETRY_BACKEND           (optional: none | log | http)
    - TROUBLESHOOTER_TELEMETRY_URL               (required for http)
    - TROUBLESHOOTER_TELEMETRY_API_KEY           (required for http)
    - TROUBLESHOOTER_TELEMETRY_TIMEOUT_SECONDS   (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `TroubleshooterSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    catalog_path: Path | None = Field(
        default=None,
        validation_alias="TROUBLESHOOTER_CATALOG_PATH",
        description="JSON workflow catalog to use instead of the built-in one",
    )

    telemetry_backend: TelemetryBackend = Field(
        default="log",
        validation_alias="TROUBLESHOOTER_TELEMETRY_BACKEND",
        description="Where troubleshooting events are sent",
    )
    telemetry_url: str = Field(
        default="",
        validation_alias="TROUBLESHOOTER_TELEMETRY_URL",
        description="Capture endpoint for the http telemetry backend",
    )
    telemetry_api_key: str = Field(
        default="",
        validation_alias="TROUBLESHOOTER_TELEMETRY_API_KEY",
        description="Project API key sent with every captured event",
    )
    telemetry_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        validation_alias="TROUBLESHOOTER_TELEMETRY_TIMEOUT_SECONDS",
        description="HTTP timeout for a single telemetry delivery",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_http_telemetry_target(self) -> TroubleshooterSettings:
        if self.telemetry_backend == "http":
            if not self.telemetry_url.strip():
                raise ValueError("TROUBLESHOOTER_TELEMETRY_URL is required for http telemetry")
            if not self.telemetry_api_key.strip():
                raise ValueError(
                    "TROUBLESHOOTER_TELEMETRY_API_KEY is required for http telemetry"
                )
        return self
