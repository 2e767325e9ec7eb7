"""FastAPI app factory.

Endpoints are thin wrappers over :class:`TroubleshootingFlow`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lifepass_troubleshooter import __version__
from lifepass_troubleshooter.server.config import ServerSettings
from lifepass_troubleshooter.server.router import router
from lifepass_troubleshooter.server.session_store import SessionStore
from lifepass_troubleshooter.troubleshooter.config import TroubleshooterSettings
from lifepass_troubleshooter.troubleshooter.telemetry import build_event_sink
from lifepass_troubleshooter.troubleshooter.workflow.catalog import WorkflowCatalog, load_catalog
from lifepass_troubleshooter.troubleshooter.workflow.events import EventSink

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # Sinks holding connections (the HTTP sink) expose close().
    close = getattr(app.state.sessions.sink, "close", None)
    if callable(close):
        close()
        logger.info("Telemetry sink closed")


def create_app(
    *,
    catalog: WorkflowCatalog | None = None,
    sink: EventSink | None = None,
) -> FastAPI:
    """Build the API.

    ``catalog`` and ``sink`` default to what the environment configures; tests
    pass their own.
    """

    settings = ServerSettings()
    engine_settings = TroubleshooterSettings()

    if catalog is None:
        catalog = load_catalog(engine_settings.catalog_path)
    if sink is None:
        sink = build_event_sink(engine_settings)

    app = FastAPI(
        title="LifePass Troubleshooter",
        version=__version__,
        description="REST API over the LifePass troubleshooting workflows.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=_lifespan,
    )

    # Expose shared state for request handlers.
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.sessions = SessionStore(
        sink=sink,
        idle_timeout_seconds=settings.session_idle_timeout_seconds,
        finished_retention_seconds=settings.finished_session_retention_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    logger.info("API ready", extra={"workflows": len(catalog)})
    return app
