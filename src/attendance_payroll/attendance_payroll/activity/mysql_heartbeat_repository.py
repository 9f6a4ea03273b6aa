from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, Optional, Sequence

from ..core.enums import Confidence, PatternType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ActivityHeartbeat, HeartbeatPayload, SuspiciousHeartbeatRow
from .repository import HeartbeatRepository

_COLUMNS = """
    h.heartbeat_id, h.attendance_id, h.recorded_at, h.active, h.suspicious, h.pattern_type,
    h.pattern_details, h.confidence, h.confidence_score, h.duration_ms, h.pattern_start_time, h.ip_address
"""


def _enum_or_none(enum_cls, value):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _to_heartbeat(r: Dict[str, Any]) -> ActivityHeartbeat:
    return ActivityHeartbeat(
        heartbeat_id=int(r["heartbeat_id"]),
        attendance_id=int(r["attendance_id"]),
        timestamp=r["recorded_at"],
        active=bool(r["active"]),
        suspicious=bool(r["suspicious"]),
        pattern_type=_enum_or_none(PatternType, r.get("pattern_type")),
        pattern_details=r.get("pattern_details"),
        confidence=_enum_or_none(Confidence, r.get("confidence")),
        confidence_score=int(r["confidence_score"]) if r.get("confidence_score") is not None else None,
        duration_ms=int(r["duration_ms"]) if r.get("duration_ms") is not None else None,
        pattern_start_time=r.get("pattern_start_time"),
        ip_address=r.get("ip_address"),
    )


class MySQLHeartbeatRepository(HeartbeatRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, *, attendance_id: int, payload: HeartbeatPayload, ip_address: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activity_heartbeats(
                    attendance_id, recorded_at, active, suspicious, pattern_type, pattern_details,
                    confidence, confidence_score, duration_ms, pattern_start_time, ip_address
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(attendance_id),
                    payload.timestamp,
                    int(payload.active),
                    int(payload.suspicious),
                    payload.pattern_type.value if payload.pattern_type else None,
                    payload.pattern_details,
                    payload.confidence.value if payload.confidence else None,
                    payload.confidence_score,
                    payload.duration_ms,
                    payload.pattern_start_time,
                    ip_address,
                ),
            )
            return int(cur.lastrowid)

    def count_inactive(self, attendance_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM activity_heartbeats WHERE attendance_id=%s AND active=0",
                (int(attendance_id),),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def list_for_attendance(self, attendance_id: int) -> Sequence[ActivityHeartbeat]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM activity_heartbeats h WHERE h.attendance_id=%s ORDER BY h.recorded_at",
                (int(attendance_id),),
            )
            return [_to_heartbeat(r) for r in fetchall(cur)]

    def list_suspicious_between(
        self,
        *,
        start: date,
        end: date,
        employee_id: Optional[int] = None,
        limit: int = 500,
    ) -> Sequence[SuspiciousHeartbeatRow]:
        clauses = ["h.suspicious=1", "h.recorded_at >= %s", "h.recorded_at < %s"]
        params: list[object] = [start, end + timedelta(days=1)]
        if employee_id is not None:
            clauses.append("a.employee_id=%s")
            params.append(int(employee_id))
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}, a.employee_id, a.work_date, e.full_name
                FROM activity_heartbeats h
                JOIN attendance_records a ON a.attendance_id = h.attendance_id
                LEFT JOIN employees e ON e.employee_id = a.employee_id
                WHERE {" AND ".join(clauses)}
                ORDER BY h.recorded_at DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [
                SuspiciousHeartbeatRow(
                    employee_id=int(r["employee_id"]),
                    employee_name=r.get("full_name"),
                    work_date=r["work_date"],
                    heartbeat=_to_heartbeat(r),
                )
                for r in fetchall(cur)
            ]
