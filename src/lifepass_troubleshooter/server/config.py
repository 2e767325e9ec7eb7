"""Configuration for the REST server."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """Settings for the REST API.

    Engine settings (catalog, telemetry, logging) stay in
    :class:`lifepass_troubleshooter.troubleshooter.config.TroubleshooterSettings`.
    """

    # Dev-friendly CORS for the operations console. Override via TROUBLESHOOTER_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="TROUBLESHOOTER_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    session_idle_timeout_seconds: float = Field(
        default=3600.0,
        gt=0,
        validation_alias="TROUBLESHOOTER_SESSION_IDLE_TIMEOUT_SECONDS",
        description="Open sessions untouched for this long are abandoned and dropped.",
    )
    finished_session_retention_seconds: float = Field(
        default=600.0,
        gt=0,
        validation_alias="TROUBLESHOOTER_FINISHED_SESSION_RETENTION_SECONDS",
        description="How long a resolved or abandoned session stays readable.",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
