from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..core.actor import Actor, require_roles
from ..core.constants import DEFAULT_SUSPICIOUS_REPORT_DAYS, DEFAULT_SUSPICIOUS_REPORT_LIMIT
from ..core.enums import Confidence, Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .model import ActivityHeartbeat, HeartbeatPayload, SuspiciousActivitySummary
from .repository import HeartbeatRepository

log = logging.getLogger(__name__)

_CONFIDENCE_RANK = {Confidence.LOW: 1, Confidence.MEDIUM: 2, Confidence.HIGH: 3}


class ActivityService:
    """Server side of the heartbeat channel.

    The server cannot see raw input; it stores whatever verdict the client
    reported, tied to the caller's open attendance record for today.
    """

    def __init__(self, heartbeats: HeartbeatRepository, attendance: AttendanceRepository):
        self._heartbeats = heartbeats
        self._attendance = attendance

    def record_heartbeat(
        self,
        actor: Actor,
        payload: HeartbeatPayload,
        *,
        ip_address: Optional[str] = None,
        now: datetime | None = None,
    ) -> int:
        now = now or now_local()
        record = self._attendance.get_for_employee_and_date(actor.user_id, now.date())
        if not record or record.punch_in is None:
            raise NotFoundError("No active attendance record for today")
        if record.punch_out is not None:
            raise ConflictError("Already punched out")

        heartbeat_id = self._heartbeats.append(
            attendance_id=record.attendance_id, payload=payload, ip_address=ip_address
        )
        if payload.suspicious:
            log.warning(
                "Suspicious activity: employee=%s attendance=%s pattern=%s confidence=%s",
                actor.user_id,
                record.attendance_id,
                payload.pattern_type.value if payload.pattern_type else None,
                payload.confidence.value if payload.confidence else None,
            )
        return heartbeat_id

    def list_heartbeats(self, actor: Actor, attendance_id: int) -> List[ActivityHeartbeat]:
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        if not actor.is_privileged and record.employee_id != actor.user_id:
            raise AuthorizationError("Employees can only view their own activity")
        return list(self._heartbeats.list_for_attendance(attendance_id))

    def suspicious_summary(
        self,
        actor: Actor,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        employee_id: Optional[int] = None,
        limit: int = DEFAULT_SUSPICIOUS_REPORT_LIMIT,
        today: Optional[date] = None,
    ) -> List[SuspiciousActivitySummary]:
        """Suspicious heartbeats grouped per employee and day, busiest first."""
        require_roles(actor, Role.ADMIN)
        today = today or now_local().date()
        end = end or today
        start = start or (end - timedelta(days=DEFAULT_SUSPICIOUS_REPORT_DAYS))
        if start > end:
            raise ValidationError("start must not be after end")

        rows = self._heartbeats.list_suspicious_between(start=start, end=end, employee_id=employee_id, limit=limit)

        groups: Dict[Tuple[int, date], SuspiciousActivitySummary] = {}
        for row in rows:
            key = (row.employee_id, row.work_date)
            summary = groups.get(key)
            if summary is None:
                summary = groups[key] = SuspiciousActivitySummary(
                    employee_id=row.employee_id, employee_name=row.employee_name, work_date=row.work_date
                )
            hb = row.heartbeat
            summary.count += 1
            if hb.pattern_type and hb.pattern_type.value not in summary.patterns:
                summary.patterns.append(hb.pattern_type.value)
            if hb.ip_address and hb.ip_address not in summary.ip_addresses:
                summary.ip_addresses.append(hb.ip_address)
            summary.total_duration_ms += hb.duration_ms or 0
            if hb.confidence and (
                summary.highest_confidence is None
                or _CONFIDENCE_RANK[hb.confidence] > _CONFIDENCE_RANK[summary.highest_confidence]
            ):
                summary.highest_confidence = hb.confidence
            if hb.confidence_score is not None and (
                summary.highest_score is None or hb.confidence_score > summary.highest_score
            ):
                summary.highest_score = hb.confidence_score

        return sorted(groups.values(), key=lambda s: (-s.count, s.work_date, s.employee_id))
