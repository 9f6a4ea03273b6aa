from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from ..core.enums import AttendanceStatus, DayState


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one calendar day."""

    attendance_id: int
    employee_id: int
    work_date: date
    status: AttendanceStatus
    punch_in: Optional[datetime] = None
    punch_out: Optional[datetime] = None
    punch_in_ip: Optional[str] = None
    punch_out_ip: Optional[str] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    total_hours: Optional[float] = None
    break_duration: Optional[float] = None
    idle_time: Optional[float] = None

    @property
    def on_break(self) -> bool:
        return self.break_start is not None and self.break_end is None

    @property
    def day_state(self) -> DayState:
        if self.punch_in is None:
            return DayState.NOT_PUNCHED_IN
        if self.punch_out is not None:
            return DayState.PUNCHED_OUT
        if self.on_break:
            return DayState.ON_BREAK
        return DayState.PUNCHED_IN

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["day_state"] = self.day_state.value
        for key, value in data.items():
            if isinstance(value, (date, datetime)):
                data[key] = value.isoformat()
        return data


@dataclass(frozen=True)
class PunchOutSummary:
    """Derived numbers written at punch-out (hours, 2 decimals)."""

    break_duration: float
    idle_time: float
    total_hours: float
    status: AttendanceStatus


@dataclass(frozen=True)
class CalendarDay:
    """Read-model for display: stored or derived status of one day."""

    work_date: date
    status: Optional[AttendanceStatus]
    derived: bool = False
    cascaded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "work_date": self.work_date.isoformat(),
            "status": self.status.value if self.status else None,
            "derived": self.derived,
            "cascaded": self.cascaded,
        }
