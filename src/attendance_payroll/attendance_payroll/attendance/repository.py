from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord

# Columns an admin/manager may change on an existing record.
EDITABLE_FIELDS = (
    "status",
    "punch_in",
    "punch_out",
    "break_start",
    "break_end",
    "total_hours",
    "break_duration",
)


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_employee_between(self, employee_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_open_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        """Records punched in but not yet punched out."""

        raise NotImplementedError

    def list_by_status_on_dates(self, status: AttendanceStatus, dates: Sequence[date]) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def create_punch_in(self, *, employee_id: int, work_date: date, punch_in: datetime, ip: Optional[str]) -> int:
        """Insert a PRESENT record. Raises ConflictError if the day already has one."""

        raise NotImplementedError

    def create_record(
        self,
        *,
        employee_id: int,
        work_date: date,
        status: AttendanceStatus,
        punch_in: Optional[datetime] = None,
        punch_out: Optional[datetime] = None,
        total_hours: Optional[float] = None,
    ) -> int:
        """Insert a record directly (admin entry, daily close, cascade). ConflictError on duplicates."""

        raise NotImplementedError

    def update_break(self, *, attendance_id: int, break_start: Optional[datetime], break_end: Optional[datetime]) -> bool:
        raise NotImplementedError

    def update_punch_out(
        self,
        *,
        attendance_id: int,
        punch_out: datetime,
        ip: Optional[str],
        break_duration: float,
        idle_time: float,
        total_hours: float,
        status: AttendanceStatus,
    ) -> bool:
        raise NotImplementedError

    def update_fields(self, *, attendance_id: int, changes: Mapping[str, Any]) -> bool:
        """Admin override of EDITABLE_FIELDS."""

        raise NotImplementedError

    def update_status(self, *, attendance_id: int, status: AttendanceStatus) -> bool:
        raise NotImplementedError
