"""FastAPI server adapter for lifepass-troubleshooter.

This module exposes a REST API over the troubleshooting engine.

Design intent:
- Keep workflow logic in `lifepass_troubleshooter.troubleshooter.workflow`
- Keep server-specific concerns (routing, CORS, session tracking) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from lifepass_troubleshooter.server.app import create_app
