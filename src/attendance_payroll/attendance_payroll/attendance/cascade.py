"""Weekend cascade rule.

An explicit ABSENT on a Friday makes the following Saturday absent, and an
explicit ABSENT on a Monday makes the preceding Sunday absent. Readers
(calendar display, payroll) derive this on the fly. The rule is only written
back to storage when an admin moves a Friday/Monday record into ABSENT.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional

from ..common.datetime_utils import cascade_source, cascade_target, is_weekend, iter_days
from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError
from .model import AttendanceRecord, CalendarDay
from .repository import AttendanceRepository

log = logging.getLogger(__name__)

RecordsByDate = Mapping[date, AttendanceRecord]


@dataclass(frozen=True)
class CascadeMutation:
    attendance_id: int
    work_date: date
    previous_status: Optional[AttendanceStatus]


def is_cascaded_absent(day: date, records_by_date: RecordsByDate) -> bool:
    source = cascade_source(day)
    if source is None:
        return False
    record = records_by_date.get(source)
    return record is not None and record.status == AttendanceStatus.ABSENT


def effective_status(day: date, records_by_date: RecordsByDate) -> Optional[AttendanceStatus]:
    """Stored status if any; otherwise the weekend default, or None for a bare weekday."""
    record = records_by_date.get(day)
    if record is not None:
        return record.status
    if is_weekend(day):
        return AttendanceStatus.ABSENT if is_cascaded_absent(day, records_by_date) else AttendanceStatus.WEEKEND
    return None


def _can_overwrite(record: AttendanceRecord) -> bool:
    if record.status == AttendanceStatus.WEEKEND:
        return True
    # A PRESENT row with no punch-in is a placeholder, not worked time.
    return record.status == AttendanceStatus.PRESENT and record.punch_in is None


class WeekendCascadeResolver:
    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    def records_by_date(self, employee_id: int, start: date, end: date) -> Dict[date, AttendanceRecord]:
        # One extra day each side so a window edge on Sat/Sun still sees its Fri/Mon.
        records = self._attendance.list_for_employee_between(
            employee_id, start - timedelta(days=1), end + timedelta(days=1)
        )
        return {r.work_date: r for r in records}

    def resolve_range(self, employee_id: int, start: date, end: date) -> List[CalendarDay]:
        by_date = self.records_by_date(employee_id, start, end)
        days: List[CalendarDay] = []
        for day in iter_days(start, end):
            stored = by_date.get(day)
            days.append(
                CalendarDay(
                    work_date=day,
                    status=effective_status(day, by_date),
                    derived=stored is None,
                    cascaded=stored is None and is_cascaded_absent(day, by_date),
                )
            )
        return days

    def materialize(
        self,
        *,
        employee_id: int,
        day: date,
        previous_status: Optional[AttendanceStatus],
        new_status: AttendanceStatus,
    ) -> Optional[CascadeMutation]:
        """Store the cascaded absence for a Friday/Monday that just became ABSENT.

        Does nothing for any other transition. Returns what was written, if anything.
        """
        if new_status != AttendanceStatus.ABSENT or previous_status == AttendanceStatus.ABSENT:
            return None
        target = cascade_target(day)
        if target is None:
            return None

        existing = self._attendance.get_for_employee_and_date(employee_id, target)
        if existing is not None:
            if not _can_overwrite(existing):
                return None
            self._attendance.update_status(attendance_id=existing.attendance_id, status=AttendanceStatus.ABSENT)
            log.info("Cascade: employee=%s %s %s -> ABSENT", employee_id, target, existing.status.value)
            return CascadeMutation(existing.attendance_id, target, existing.status)

        try:
            attendance_id = self._attendance.create_record(
                employee_id=employee_id, work_date=target, status=AttendanceStatus.ABSENT
            )
        except ConflictError:
            log.warning("Cascade: employee=%s %s was created concurrently, leaving it", employee_id, target)
            return None
        log.info("Cascade: employee=%s %s created as ABSENT", employee_id, target)
        return CascadeMutation(attendance_id, target, None)
