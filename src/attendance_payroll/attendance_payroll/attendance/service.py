from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from ..activity.idle import IdleTimeAccumulator
from ..audit.model import diff_changes
from ..audit.recorder import AuditRecorder
from ..common.datetime_utils import days_inclusive, hours_between, is_weekend, iter_days, now_local
from ..common.numbers import round2
from ..common.validators import parse_enum
from ..core.actor import Actor, require_roles, require_self_or_privileged
from ..core.enums import AttendanceAction, AttendanceStatus, AuditAction, Role
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .cascade import CascadeMutation, WeekendCascadeResolver
from .model import AttendanceRecord, CalendarDay
from .repository import AttendanceRepository
from .worked_time import WorkedTimeCalculator

log = logging.getLogger(__name__)

ENTITY = "Attendance"
MAX_RANGE_DAYS = 366

# Fields an admin/manager may submit; hours are derived from the punches.
ADMIN_EDITABLE = ("status", "punch_in", "punch_out", "break_start", "break_end")
_TIME_FIELDS = ("punch_in", "punch_out", "break_start", "break_end")


class AttendanceService:
    """Day-level attendance state machine.

    NOT_PUNCHED_IN -> PUNCHED_IN -> (ON_BREAK <-> PUNCHED_IN)* -> PUNCHED_OUT
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        idle: IdleTimeAccumulator,
        *,
        audit: AuditRecorder,
        cascade: WeekendCascadeResolver | None = None,
        calculator: WorkedTimeCalculator | None = None,
    ):
        self._attendance = attendance
        self._employees = employees
        self._idle = idle
        self._audit = audit
        self._cascade = cascade or WeekendCascadeResolver(attendance)
        self._calculator = calculator or WorkedTimeCalculator()

    # ----- employee actions -------------------------------------------------

    def apply(
        self,
        actor: Actor,
        action: str,
        employee_id: int,
        *,
        ip: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        try:
            parsed = AttendanceAction(action)
        except ValueError:
            raise ValidationError("action must be one of: punch-in, punch-out, break-start, break-end")

        handlers = {
            AttendanceAction.PUNCH_IN: self.punch_in,
            AttendanceAction.PUNCH_OUT: self.punch_out,
            AttendanceAction.BREAK_START: self.break_start,
            AttendanceAction.BREAK_END: self.break_end,
        }
        return handlers[parsed](actor, employee_id, ip=ip, now=now)

    def punch_in(
        self,
        actor: Actor,
        employee_id: int,
        *,
        ip: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        require_self_or_privileged(actor, employee_id)
        now = now or now_local()
        # The record belongs to the punch-in's own calendar day.
        work_date = now.date()

        if not self._employees.get_by_id(employee_id):
            raise NotFoundError("Employee not found")

        if self._attendance.get_for_employee_and_date(employee_id, work_date):
            raise ConflictError("Already punched in today")

        # The unique (employee, day) key turns a concurrent duplicate into ConflictError.
        attendance_id = self._attendance.create_punch_in(
            employee_id=employee_id, work_date=work_date, punch_in=now, ip=ip
        )
        log.info("Punch-in: employee=%s attendance=%s ip=%s", employee_id, attendance_id, ip)
        return self._reload(attendance_id)

    def punch_out(
        self,
        actor: Actor,
        employee_id: int,
        *,
        ip: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        require_self_or_privileged(actor, employee_id)
        now = now or now_local()
        record = self._require_today(employee_id, now.date())
        return self._close(record, now=now, ip=ip)

    def break_start(
        self,
        actor: Actor,
        employee_id: int,
        *,
        ip: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        require_self_or_privileged(actor, employee_id)
        now = now or now_local()
        record = self._require_open(self._require_today(employee_id, now.date()))

        if record.on_break:
            raise ConflictError("Break already in progress")

        # Starting again after a finished break opens a new window; the old one is dropped.
        self._attendance.update_break(attendance_id=record.attendance_id, break_start=now, break_end=None)
        return self._reload(record.attendance_id)

    def break_end(
        self,
        actor: Actor,
        employee_id: int,
        *,
        ip: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        require_self_or_privileged(actor, employee_id)
        now = now or now_local()
        record = self._require_open(self._require_today(employee_id, now.date()))

        if record.break_start is None:
            raise ConflictError("No break started")
        if record.break_end is not None:
            raise ConflictError("Break already ended")

        self._attendance.update_break(
            attendance_id=record.attendance_id, break_start=record.break_start, break_end=now
        )
        return self._reload(record.attendance_id)

    def get_today(self, actor: Actor, employee_id: int, *, now: datetime | None = None) -> Optional[AttendanceRecord]:
        require_self_or_privileged(actor, employee_id)
        now = now or now_local()
        return self._attendance.get_for_employee_and_date(employee_id, now.date())

    def calendar(self, actor: Actor, employee_id: int, *, start: date, end: date) -> List[CalendarDay]:
        """Stored statuses plus derived weekend defaults and cascaded absences."""
        require_self_or_privileged(actor, employee_id)
        self._check_range(start, end)
        return self._cascade.resolve_range(employee_id, start, end)

    # ----- admin / manager actions ------------------------------------------

    def create_manual_record(
        self,
        actor: Actor,
        *,
        employee_id: int,
        work_date: date,
        status: AttendanceStatus,
        punch_in: Optional[datetime] = None,
        punch_out: Optional[datetime] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AttendanceRecord:
        require_roles(actor, Role.ADMIN, Role.MANAGER)

        employee = self._employees.get_by_id(employee_id)
        if not employee:
            raise NotFoundError("Employee not found")
        if self._attendance.get_for_employee_and_date(employee_id, work_date):
            raise ConflictError("Attendance record already exists for this date")

        total_hours = None
        if punch_in and punch_out:
            if punch_out <= punch_in:
                raise ValidationError("punch_out must be after punch_in")
            total_hours = round2(hours_between(punch_in, punch_out))

        attendance_id = self._attendance.create_record(
            employee_id=employee_id,
            work_date=work_date,
            status=status,
            punch_in=punch_in,
            punch_out=punch_out,
            total_hours=total_hours,
        )
        record = self._reload(attendance_id)

        self._audit.record(
            actor=actor,
            action=AuditAction.CREATE,
            entity_type=ENTITY,
            entity_id=attendance_id,
            entity_name=f"{employee.full_name} - {work_date.isoformat()}",
            changes=diff_changes({}, asdict(record), ("status", "punch_in", "punch_out", "work_date")),
            ip_address=ip,
            user_agent=user_agent,
        )
        self._apply_cascade(actor, record, previous_status=None, ip=ip, user_agent=user_agent)
        return record

    def update_record(
        self,
        actor: Actor,
        attendance_id: int,
        changes: Mapping[str, Any],
        *,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AttendanceRecord:
        """Backdated edit. Emits a before/after audit entry."""
        require_roles(actor, Role.ADMIN, Role.MANAGER)

        unknown = set(changes) - set(ADMIN_EDITABLE)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        changes = dict(changes)
        if "status" in changes:
            changes["status"] = parse_enum(AttendanceStatus, changes["status"], "status")

        before = self._attendance.get_by_id(attendance_id)
        if not before:
            raise NotFoundError("Attendance record not found")

        after = asdict(before)
        after.update(changes)
        self._validate_times(after)

        if any(name in changes for name in _TIME_FIELDS) and after["punch_in"] and after["punch_out"]:
            breaks = self._calculator.break_hours(
                break_start=after["break_start"], break_end=after["break_end"], punch_out=after["punch_out"]
            )
            elapsed = hours_between(after["punch_in"], after["punch_out"])
            after["break_duration"] = round2(breaks)
            after["total_hours"] = round2(max(elapsed - breaks, 0.0))

        diff = diff_changes(asdict(before), after, ADMIN_EDITABLE + ("total_hours", "break_duration"))
        if not diff:
            return before

        self._attendance.update_fields(
            attendance_id=attendance_id,
            changes={name: after[name] for name in diff},
        )
        record = self._reload(attendance_id)

        self._audit.record(
            actor=actor,
            action=AuditAction.UPDATE,
            entity_type=ENTITY,
            entity_id=attendance_id,
            entity_name=self._entity_name(record),
            changes=diff,
            ip_address=ip,
            user_agent=user_agent,
        )
        self._apply_cascade(actor, record, previous_status=before.status, ip=ip, user_agent=user_agent)
        return record

    def force_punch_out(
        self,
        actor: Actor,
        employee_id: int,
        *,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        """Close a session the employee forgot to end."""
        require_roles(actor, Role.ADMIN)
        now = now or now_local()

        record = self._require_today(employee_id, now.date())
        before = asdict(record)
        closed = self._close(record, now=now, ip=ip)

        self._audit.record(
            actor=actor,
            action=AuditAction.UPDATE,
            entity_type=ENTITY,
            entity_id=closed.attendance_id,
            entity_name=self._entity_name(closed),
            changes=diff_changes(before, asdict(closed), ("punch_out", "status", "total_hours")),
            ip_address=ip,
            user_agent=user_agent,
        )
        return closed

    def list_open_sessions(self, actor: Actor, *, day: date) -> List[AttendanceRecord]:
        require_roles(actor, Role.ADMIN)
        return list(self._attendance.list_open_for_date(day))

    def mark_leave(
        self,
        actor: Actor,
        *,
        employee_id: int,
        start: date,
        end: date,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        """Set every day of an approved leave to LEAVE. Returns days touched."""
        require_roles(actor, Role.ADMIN, Role.MANAGER)
        self._check_range(start, end)
        if not self._employees.get_by_id(employee_id):
            raise NotFoundError("Employee not found")

        existing = {r.work_date: r for r in self._attendance.list_for_employee_between(employee_id, start, end)}
        touched = 0
        for day in iter_days(start, end):
            record = existing.get(day)
            if record is None:
                self._attendance.create_record(employee_id=employee_id, work_date=day, status=AttendanceStatus.LEAVE)
                touched += 1
            elif record.status != AttendanceStatus.LEAVE:
                self._attendance.update_status(attendance_id=record.attendance_id, status=AttendanceStatus.LEAVE)
                touched += 1

        self._audit.record(
            actor=actor,
            action=AuditAction.UPDATE,
            entity_type=ENTITY,
            entity_id=employee_id,
            entity_name=f"Leave {start.isoformat()}..{end.isoformat()}",
            changes={"status": {"from": None, "to": AttendanceStatus.LEAVE.value}, "days": {"from": None, "to": touched}},
            ip_address=ip,
            user_agent=user_agent,
        )
        return touched

    def revert_leave(
        self,
        actor: Actor,
        *,
        employee_id: int,
        start: date,
        end: date,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        """Undo a cancelled leave: weekends back to WEEKEND, weekdays to ABSENT."""
        require_roles(actor, Role.ADMIN, Role.MANAGER)
        self._check_range(start, end)

        reverted: List[AttendanceRecord] = []
        for record in self._attendance.list_for_employee_between(employee_id, start, end):
            if record.status != AttendanceStatus.LEAVE:
                continue
            status = AttendanceStatus.WEEKEND if is_weekend(record.work_date) else AttendanceStatus.ABSENT
            self._attendance.update_status(attendance_id=record.attendance_id, status=status)
            reverted.append(record)

        if reverted:
            self._audit.record(
                actor=actor,
                action=AuditAction.UPDATE,
                entity_type=ENTITY,
                entity_id=employee_id,
                entity_name=f"Leave reverted {start.isoformat()}..{end.isoformat()}",
                changes={"status": {"from": AttendanceStatus.LEAVE.value, "to": "WEEKEND/ABSENT"}},
                ip_address=ip,
                user_agent=user_agent,
            )

        # Cascade after all reverts so a reverted Saturday can still receive Friday's absence.
        for record in reverted:
            if not is_weekend(record.work_date):
                self._apply_cascade(
                    actor,
                    self._reload(record.attendance_id),
                    previous_status=AttendanceStatus.LEAVE,
                    ip=ip,
                    user_agent=user_agent,
                )
        return len(reverted)

    # ----- helpers ----------------------------------------------------------

    def _close(self, record: AttendanceRecord, *, now: datetime, ip: Optional[str]) -> AttendanceRecord:
        record = self._require_open(record)
        summary = self._calculator.summarize(
            record, punch_out=now, idle_hours=self._idle.idle_hours(record.attendance_id)
        )
        updated = self._attendance.update_punch_out(
            attendance_id=record.attendance_id,
            punch_out=now,
            ip=ip,
            break_duration=summary.break_duration,
            idle_time=summary.idle_time,
            total_hours=summary.total_hours,
            status=summary.status,
        )
        if not updated:
            raise ConflictError("Already punched out")

        log.info(
            "Punch-out: employee=%s attendance=%s hours=%.2f break=%.2f idle=%.2f status=%s",
            record.employee_id,
            record.attendance_id,
            summary.total_hours,
            summary.break_duration,
            summary.idle_time,
            summary.status.value,
        )
        return self._reload(record.attendance_id)

    def _apply_cascade(
        self,
        actor: Actor,
        record: AttendanceRecord,
        *,
        previous_status: Optional[AttendanceStatus],
        ip: Optional[str],
        user_agent: Optional[str],
    ) -> Optional[CascadeMutation]:
        mutation = self._cascade.materialize(
            employee_id=record.employee_id,
            day=record.work_date,
            previous_status=previous_status,
            new_status=record.status,
        )
        if mutation is None:
            return None

        self._audit.record(
            actor=actor,
            action=AuditAction.UPDATE if mutation.previous_status else AuditAction.CREATE,
            entity_type=ENTITY,
            entity_id=mutation.attendance_id,
            entity_name=f"Weekend cascade from {record.work_date.isoformat()}",
            changes={
                "status": {
                    "from": mutation.previous_status.value if mutation.previous_status else None,
                    "to": AttendanceStatus.ABSENT.value,
                }
            },
            ip_address=ip,
            user_agent=user_agent,
        )
        return mutation

    def _require_today(self, employee_id: int, today: date) -> AttendanceRecord:
        record = self._attendance.get_for_employee_and_date(employee_id, today)
        if not record:
            raise NotFoundError("No attendance record for today")
        return record

    @staticmethod
    def _require_open(record: AttendanceRecord) -> AttendanceRecord:
        if record.punch_out is not None:
            raise ConflictError("Already punched out")
        if record.punch_in is None:
            raise ConflictError("Not punched in today")
        return record

    def _reload(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def _entity_name(self, record: AttendanceRecord) -> str:
        employee = self._employees.get_by_id(record.employee_id)
        name = employee.full_name if employee else f"#{record.employee_id}"
        return f"{name} - {record.work_date.isoformat()}"

    @staticmethod
    def _check_range(start: date, end: date) -> None:
        if start > end:
            raise ValidationError("start must not be after end")
        if days_inclusive(start, end) > MAX_RANGE_DAYS:
            raise ValidationError(f"Range cannot exceed {MAX_RANGE_DAYS} days")

    @staticmethod
    def _validate_times(values: Dict[str, Any]) -> None:
        punch_in, punch_out = values.get("punch_in"), values.get("punch_out")
        break_start, break_end = values.get("break_start"), values.get("break_end")
        if punch_out is not None and punch_in is None:
            raise ValidationError("punch_out requires punch_in")
        if punch_in and punch_out and punch_out <= punch_in:
            raise ValidationError("punch_out must be after punch_in")
        if break_end is not None and break_start is None:
            raise ValidationError("break_end requires break_start")
        if break_start and break_end and break_end < break_start:
            raise ValidationError("break_end must not be before break_start")
