from __future__ import annotations

from ..core.constants import HEARTBEAT_INTERVAL_SECONDS
from .repository import HeartbeatRepository


class IdleTimeAccumulator:
    """Idle hours = inactive heartbeats x heartbeat interval.

    Missing heartbeats (closed tab, crashed client) are not idle time: only a
    client that reported ``active=false`` contributes.
    """

    def __init__(self, heartbeats: HeartbeatRepository, *, interval_seconds: int = HEARTBEAT_INTERVAL_SECONDS):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._heartbeats = heartbeats
        self._interval_seconds = int(interval_seconds)

    @property
    def interval_seconds(self) -> int:
        return self._interval_seconds

    def idle_hours(self, attendance_id: int) -> float:
        inactive = self._heartbeats.count_inactive(attendance_id)
        return inactive * self._interval_seconds / 3600.0
