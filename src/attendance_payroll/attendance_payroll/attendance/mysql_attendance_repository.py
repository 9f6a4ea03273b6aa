from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from ..common.numbers import as_optional_float
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import conflict_on_duplicate, db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import EDITABLE_FIELDS, AttendanceRepository

_COLUMNS = """
    attendance_id, employee_id, work_date, punch_in, punch_out, punch_in_ip, punch_out_ip,
    break_start, break_end, status, total_hours, break_duration, idle_time
"""

_DUPLICATE_DAY = "An attendance record already exists for this day"


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        punch_in=r.get("punch_in"),
        punch_out=r.get("punch_out"),
        punch_in_ip=r.get("punch_in_ip"),
        punch_out_ip=r.get("punch_out_ip"),
        break_start=r.get("break_start"),
        break_end=r.get("break_end"),
        total_hours=as_optional_float(r.get("total_hours")),
        break_duration=as_optional_float(r.get("break_duration")),
        idle_time=as_optional_float(r.get("idle_time")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_employee_between(self, employee_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (int(employee_id), start, end),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE work_date=%s ORDER BY employee_id",
                (work_date,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_open_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE work_date=%s AND punch_in IS NOT NULL AND punch_out IS NULL
                ORDER BY employee_id
                """,
                (work_date,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_by_status_on_dates(self, status: AttendanceStatus, dates: Sequence[date]) -> Sequence[AttendanceRecord]:
        if not dates:
            return []
        placeholders = ",".join(["%s"] * len(dates))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE status=%s AND work_date IN ({placeholders})
                ORDER BY work_date, employee_id
                """,
                (status.value, *dates),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def create_punch_in(self, *, employee_id: int, work_date: date, punch_in: datetime, ip: Optional[str]) -> int:
        with conflict_on_duplicate(_DUPLICATE_DAY), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(employee_id, work_date, punch_in, punch_in_ip, status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(employee_id), work_date, punch_in, ip, AttendanceStatus.PRESENT.value),
            )
            return int(cur.lastrowid)

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
        with conflict_on_duplicate(_DUPLICATE_DAY), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(employee_id, work_date, punch_in, punch_out, status, total_hours)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(employee_id), work_date, punch_in, punch_out, status.value, total_hours),
            )
            return int(cur.lastrowid)

    def update_break(self, *, attendance_id: int, break_start: Optional[datetime], break_end: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET break_start=%s, break_end=%s WHERE attendance_id=%s",
                (break_start, break_end, int(attendance_id)),
            )
            return cur.rowcount > 0

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
        with db_cursor(self._conn_factory) as (_, cur):
            # Guarded on punch_out IS NULL so a racing second punch-out updates nothing.
            cur.execute(
                """
                UPDATE attendance_records
                SET punch_out=%s, punch_out_ip=%s, break_duration=%s, idle_time=%s, total_hours=%s, status=%s
                WHERE attendance_id=%s AND punch_out IS NULL
                """,
                (punch_out, ip, break_duration, idle_time, total_hours, status.value, int(attendance_id)),
            )
            return cur.rowcount > 0

    def update_fields(self, *, attendance_id: int, changes: Mapping[str, Any]) -> bool:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        if not changes:
            return False

        assignments = []
        params: list[object] = []
        for name in EDITABLE_FIELDS:
            if name in changes:
                value = changes[name]
                assignments.append(f"{name}=%s")
                params.append(value.value if isinstance(value, AttendanceStatus) else value)
        params.append(int(attendance_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE attendance_records SET {', '.join(assignments)} WHERE attendance_id=%s",
                tuple(params),
            )
            return cur.rowcount > 0

    def update_status(self, *, attendance_id: int, status: AttendanceStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_records SET status=%s WHERE attendance_id=%s",
                (status.value, int(attendance_id)),
            )
            return cur.rowcount > 0
