"""In-memory tracking of REST troubleshooting sessions.

Sessions live for the lifetime of the process only. Finished sessions are kept
for ``finished_retention_seconds`` after their last request so clients can
still read their final record. Open sessions nobody has touched for
``idle_timeout_seconds`` are abandoned and dropped. Expired sessions are swept
whenever a session is created or looked up.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from lifepass_troubleshooter.troubleshooter.workflow.events import EventSink
from lifepass_troubleshooter.troubleshooter.workflow.flow import TroubleshootingFlow
from lifepass_troubleshooter.troubleshooter.workflow.models import Workflow

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    flow: TroubleshootingFlow
    touched_at: float


@dataclass
class SessionStore:
    sink: EventSink
    idle_timeout_seconds: float = 3600.0
    finished_retention_seconds: float = 600.0
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, _Entry] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def create(self, workflow: Workflow) -> TroubleshootingFlow:
        self.evict_expired()
        flow = TroubleshootingFlow.start(workflow, sink=self.sink)
        with self._lock:
            self._entries[flow.session.id] = _Entry(flow=flow, touched_at=self.clock())
        return flow

    def get(self, session_id: str) -> TroubleshootingFlow | None:
        self.evict_expired()
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            entry.touched_at = self.clock()
            return entry.flow

    def evict_expired(self) -> list[str]:
        """Drop expired sessions and return their ids."""

        now = self.clock()
        with self._lock:
            expired = [
                session_id
                for session_id, entry in self._entries.items()
                if self._is_expired(entry, now)
            ]
            flows = [self._entries.pop(session_id).flow for session_id in expired]

        for flow in flows:
            with flow.lock:
                if not flow.is_finished:
                    flow.abandon()
            logger.info(
                "Session evicted",
                extra={"session_id": flow.session.id, "workflow_id": flow.workflow.id},
            )
        return expired

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        idle = now - entry.touched_at
        if entry.flow.is_finished:
            return idle >= self.finished_retention_seconds
        return idle >= self.idle_timeout_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
