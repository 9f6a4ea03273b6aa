from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from ..audit.recorder import AuditRecorder
from ..common.datetime_utils import is_weekend
from ..core.actor import Actor, require_roles
from ..core.enums import AttendanceStatus, AuditAction, Role
from ..core.exceptions import ValidationError
from ..employees.model import EmployeeSalaryProfile
from ..employees.repository import EmployeeRepository
from ..holidays.repository import HolidayRepository
from .cascade import WeekendCascadeResolver, is_cascaded_absent
from .repository import AttendanceRepository

log = logging.getLogger(__name__)


@dataclass
class DailyCloseResult:
    work_date: date
    marked: Counter = field(default_factory=Counter)
    cascaded: int = 0
    already_recorded: int = 0
    not_employed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "work_date": self.work_date.isoformat(),
            "marked": {status.value: count for status, count in self.marked.items()},
            "cascaded": self.cascaded,
            "already_recorded": self.already_recorded,
            "not_employed": self.not_employed,
            "errors": list(self.errors),
        }


class DailyAttendanceCloser:
    """End-of-day batch: every employee without a record gets one.

    Weekends become WEEKEND (ABSENT when cascaded), holidays HOLIDAY and plain
    weekdays ABSENT. One employee failing does not stop the run.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        holidays: HolidayRepository,
        *,
        audit: AuditRecorder,
        cascade: WeekendCascadeResolver | None = None,
    ):
        self._attendance = attendance
        self._employees = employees
        self._holidays = holidays
        self._audit = audit
        self._cascade = cascade or WeekendCascadeResolver(attendance)

    def close_day(
        self,
        actor: Actor,
        work_date: date,
        *,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> DailyCloseResult:
        require_roles(actor, Role.ADMIN)

        result = DailyCloseResult(work_date=work_date)
        holiday = any(h.holiday_date == work_date for h in self._holidays.list_between(work_date, work_date))
        recorded = {r.employee_id for r in self._attendance.list_for_date(work_date)}

        for employee in self._employees.list_active():
            if not employee.has_joined_by(work_date) or employee.has_left_before(work_date):
                result.not_employed += 1
                continue
            if employee.employee_id in recorded:
                result.already_recorded += 1
                continue
            try:
                self._close_employee(employee, work_date, holiday=holiday, result=result)
            except Exception as exc:
                log.exception("Daily close failed for employee=%s on %s", employee.employee_id, work_date)
                result.errors.append({"employee_id": employee.employee_id, "error": str(exc)})

        log.info(
            "Daily close %s: marked=%s cascaded=%s errors=%s",
            work_date,
            dict(result.marked),
            result.cascaded,
            len(result.errors),
        )
        self._audit.record(
            actor=actor,
            action=AuditAction.CREATE,
            entity_type="AttendanceDailyClose",
            entity_id=work_date.isoformat(),
            changes={
                status.value: {"from": None, "to": count} for status, count in result.marked.items()
            },
            ip_address=ip,
            user_agent=user_agent,
        )
        return result

    def _close_employee(
        self,
        employee: EmployeeSalaryProfile,
        work_date: date,
        *,
        holiday: bool,
        result: DailyCloseResult,
    ) -> None:
        employee_id = employee.employee_id
        if is_weekend(work_date):
            by_date = self._cascade.records_by_date(employee_id, work_date, work_date)
            status = AttendanceStatus.ABSENT if is_cascaded_absent(work_date, by_date) else AttendanceStatus.WEEKEND
        elif holiday:
            status = AttendanceStatus.HOLIDAY
        else:
            status = AttendanceStatus.ABSENT

        self._attendance.create_record(employee_id=employee_id, work_date=work_date, status=status)
        result.marked[status] += 1

        if status == AttendanceStatus.ABSENT and not is_weekend(work_date):
            mutation = self._cascade.materialize(
                employee_id=employee_id, day=work_date, previous_status=None, new_status=status
            )
            if mutation is not None:
                result.cascaded += 1

    def fix_holiday_absences(
        self,
        actor: Actor,
        *,
        start: date,
        end: date,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        """Turn ABSENT records that fall on a holiday into HOLIDAY."""
        require_roles(actor, Role.ADMIN)
        if start > end:
            raise ValidationError("start must not be after end")

        holiday_dates = [h.holiday_date for h in self._holidays.list_between(start, end)]
        records = self._attendance.list_by_status_on_dates(AttendanceStatus.ABSENT, holiday_dates)
        for record in records:
            self._attendance.update_status(attendance_id=record.attendance_id, status=AttendanceStatus.HOLIDAY)

        if records:
            self._audit.record(
                actor=actor,
                action=AuditAction.UPDATE,
                entity_type="Attendance",
                entity_id=None,
                entity_name=f"Holiday fix {start.isoformat()}..{end.isoformat()}",
                changes={
                    "status": {"from": AttendanceStatus.ABSENT.value, "to": AttendanceStatus.HOLIDAY.value},
                    "records": {"from": None, "to": len(records)},
                },
                ip_address=ip,
                user_agent=user_agent,
            )
        log.info("Holiday fix %s..%s: %s records", start, end, len(records))
        return len(records)
