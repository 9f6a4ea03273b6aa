from __future__ import annotations

from dataclasses import dataclass

from .activity.idle import IdleTimeAccumulator
from .activity.mysql_heartbeat_repository import MySQLHeartbeatRepository
from .activity.service import ActivityService
from .attendance.cascade import WeekendCascadeResolver
from .attendance.daily_close import DailyAttendanceCloser
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_sink import MySQLAuditSink
from .audit.recorder import AuditRecorder
from .core.constants import DEFAULT_PROFESSIONAL_TAX, HEARTBEAT_INTERVAL_SECONDS
from .database.connection import DatabaseConnection, db_config_from_dict
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .holidays.mysql_holiday_repository import MySQLHolidayRepository
from .payroll.deductions import DeductionPolicy
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.proration import AttendanceProrator
from .payroll.service import PayrollService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    employees_repo: MySQLEmployeeRepository
    holidays_repo: MySQLHolidayRepository
    attendance_repo: MySQLAttendanceRepository
    heartbeats_repo: MySQLHeartbeatRepository
    payroll_repo: MySQLPayrollRepository

    audit: AuditRecorder
    attendance_service: AttendanceService
    daily_closer: DailyAttendanceCloser
    activity_service: ActivityService
    payroll_service: PayrollService


def build_container(
    *,
    db_config: dict,
    heartbeat_interval_seconds: int = HEARTBEAT_INTERVAL_SECONDS,
    professional_tax: float = DEFAULT_PROFESSIONAL_TAX,
) -> Container:
    conn = DatabaseConnection.get_instance(db_config_from_dict(db_config))

    employees_repo = MySQLEmployeeRepository(conn)
    holidays_repo = MySQLHolidayRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    heartbeats_repo = MySQLHeartbeatRepository(conn)
    payroll_repo = MySQLPayrollRepository(conn)

    audit = AuditRecorder(MySQLAuditSink(conn))
    cascade = WeekendCascadeResolver(attendance_repo)

    attendance_service = AttendanceService(
        attendance_repo,
        employees_repo,
        IdleTimeAccumulator(heartbeats_repo, interval_seconds=heartbeat_interval_seconds),
        audit=audit,
        cascade=cascade,
    )
    daily_closer = DailyAttendanceCloser(attendance_repo, employees_repo, holidays_repo, audit=audit, cascade=cascade)
    activity_service = ActivityService(heartbeats_repo, attendance_repo)
    payroll_service = PayrollService(
        payroll_repo,
        employees_repo,
        AttendanceProrator(cascade),
        audit=audit,
        deductions=DeductionPolicy(professional_tax=professional_tax),
    )

    return Container(
        conn=conn,
        employees_repo=employees_repo,
        holidays_repo=holidays_repo,
        attendance_repo=attendance_repo,
        heartbeats_repo=heartbeats_repo,
        payroll_repo=payroll_repo,
        audit=audit,
        attendance_service=attendance_service,
        daily_closer=daily_closer,
        activity_service=activity_service,
        payroll_service=payroll_service,
    )
