from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..core.enums import AttendanceAction
from .client import AttendanceApiClient
from .heartbeat import HeartbeatScheduler
from .session import ActivitySession

log = logging.getLogger(__name__)


class WorkSessionAgent:
    """Ties heartbeat emission to the punched-in period of one employee."""

    def __init__(
        self,
        client: AttendanceApiClient,
        employee_id: int,
        *,
        session: ActivitySession | None = None,
        scheduler: HeartbeatScheduler | None = None,
    ):
        self._client = client
        self._employee_id = int(employee_id)
        self.session = session or ActivitySession()
        self.scheduler = scheduler or HeartbeatScheduler(self.session, client.send_heartbeat)

    @property
    def punched_in(self) -> bool:
        return self.scheduler.running

    def punch_in(self) -> Optional[Dict[str, Any]]:
        record = self._client.post_action(AttendanceAction.PUNCH_IN, self._employee_id)
        if record is not None:
            self.session.reset()
            self.scheduler.start()
        return record

    def punch_out(self) -> Optional[Dict[str, Any]]:
        # Flush what was observed so far; the server stops accepting heartbeats after punch-out.
        self.scheduler.tick_heartbeat()
        record = self._client.post_action(AttendanceAction.PUNCH_OUT, self._employee_id)
        if record is not None:
            self.scheduler.cancel()
        return record

    def break_start(self) -> Optional[Dict[str, Any]]:
        return self._client.post_action(AttendanceAction.BREAK_START, self._employee_id)

    def break_end(self) -> Optional[Dict[str, Any]]:
        return self._client.post_action(AttendanceAction.BREAK_END, self._employee_id)
