"""Telemetry delivery.

Troubleshooting events are fire-and-forget. The HTTP sink posts each event to a
capture endpoint on a daemon thread so navigation never waits on the network,
and delivery failures are only logged.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime

import requests

from lifepass_troubleshooter.troubleshooter.config import TroubleshooterSettings
from lifepass_troubleshooter.troubleshooter.workflow.events import (
    EventSink,
    LoggingEventSink,
    NullEventSink,
)

logger = logging.getLogger(__name__)

_ANONYMOUS_DISTINCT_ID = "lifepass-troubleshooter"


class HttpEventSink:
    """Post events to a capture endpoint.

    The request body is ``{"api_key", "event", "distinct_id", "properties", "timestamp"}``;
    the session id is used as the distinct id when present.
    """

    def __init__(
        self,
        *,
        url: str,
        api_key: str,
        timeout_seconds: float = 5.0,
        background: bool = True,
        session: requests.Session | None = None,
    ) -> None:
        if not url.strip():
            raise ValueError("Telemetry URL is required")
        if not api_key.strip():
            raise ValueError("Telemetry API key is required")

        self._url = url.strip()
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._background = background
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Content-Type": "application/json",
                "User-Agent": "lifepass-troubleshooter",
            }
        )

    def emit(self, event: str, payload: dict[str, object]) -> None:
        body = {
            "api_key": self._api_key,
            "event": event,
            "distinct_id": str(payload.get("session_id") or _ANONYMOUS_DISTINCT_ID),
            "properties": dict(payload),
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }
        if not self._background:
            self._deliver(body)
            return

        thread = threading.Thread(
            target=self._deliver,
            name=f"telemetry-{event}",
            daemon=True,
            args=(body,),
        )
        thread.start()

    def _deliver(self, body: dict[str, object]) -> None:
        try:
            resp = self._session.post(self._url, json=body, timeout=self._timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning(
                "Telemetry delivery failed",
                extra={"event": body.get("event"), "error": str(e)},
            )
            return
        logger.debug("Telemetry delivered", extra={"event": body.get("event")})

    def close(self) -> None:
        self._session.close()


def build_event_sink(settings: TroubleshooterSettings) -> EventSink:
    """Create the event sink selected by configuration."""

    logger.debug("Creating telemetry sink", extra={"backend": settings.telemetry_backend})

    if settings.telemetry_backend == "none":
        return NullEventSink()
    if settings.telemetry_backend == "log":
        return LoggingEventSink()
    if settings.telemetry_backend == "http":
        return HttpEventSink(
            url=settings.telemetry_url,
            api_key=settings.telemetry_api_key,
            timeout_seconds=settings.telemetry_timeout_seconds,
        )
    raise ValueError(f"Unsupported telemetry backend: {settings.telemetry_backend}")
