from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import ActivityHeartbeat, HeartbeatPayload, SuspiciousHeartbeatRow


class HeartbeatRepository(Protocol):
    def append(self, *, attendance_id: int, payload: HeartbeatPayload, ip_address: Optional[str]) -> int:
        raise NotImplementedError

    def count_inactive(self, attendance_id: int) -> int:
        """Heartbeats explicitly reporting active=false."""

        raise NotImplementedError

    def list_for_attendance(self, attendance_id: int) -> Sequence[ActivityHeartbeat]:
        raise NotImplementedError

    def list_suspicious_between(
        self,
        *,
        start: date,
        end: date,
        employee_id: Optional[int] = None,
        limit: int = 500,
    ) -> Sequence[SuspiciousHeartbeatRow]:
        raise NotImplementedError
