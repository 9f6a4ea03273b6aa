from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.attendance_payroll.attendance_payroll.activity.model import (
    ActivityHeartbeat,
    HeartbeatPayload,
    SuspiciousHeartbeatRow,
)
from src.attendance_payroll.attendance_payroll.attendance.model import AttendanceRecord
from src.attendance_payroll.attendance_payroll.audit.recorder import AuditRecorder
from src.attendance_payroll.attendance_payroll.core.actor import Actor
from src.attendance_payroll.attendance_payroll.core.enums import (
    AttendanceStatus,
    PayrollStatus,
    Role,
    SalaryType,
)
from src.attendance_payroll.attendance_payroll.core.exceptions import ConflictError
from src.attendance_payroll.attendance_payroll.employees.model import EmployeeSalaryProfile
from src.attendance_payroll.attendance_payroll.holidays.model import Holiday
from src.attendance_payroll.attendance_payroll.payroll.model import PayrollDraft, PayrollRecord
from src.attendance_payroll.attendance_payroll.sales.model import achieved_upfront


@dataclass
class InMemoryEmployees:
    profiles: dict[int, EmployeeSalaryProfile] = field(default_factory=dict)

    def add(self, employee_id: int, **kwargs) -> EmployeeSalaryProfile:
        defaults = dict(
            full_name=f"Employee {employee_id}",
            monthly_salary=30000.0,
            salary_type=SalaryType.FIXED,
            date_of_joining=date(2024, 1, 1),
        )
        defaults.update(kwargs)
        profile = EmployeeSalaryProfile(employee_id=employee_id, **defaults)
        self.profiles[employee_id] = profile
        return profile

    def get_by_id(self, employee_id: int) -> Optional[EmployeeSalaryProfile]:
        return self.profiles.get(int(employee_id))

    def list_active(self):
        return sorted(self.profiles.values(), key=lambda p: p.employee_id)


class InMemoryAttendance:
    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self._next_id = 1

    def seed(self, employee_id: int, work_date: date, status: AttendanceStatus, **kwargs) -> AttendanceRecord:
        attendance_id = self._insert(employee_id=employee_id, work_date=work_date, status=status, **kwargs)
        return self.records[attendance_id]

    def _insert(self, *, employee_id: int, work_date: date, status: AttendanceStatus, **kwargs) -> int:
        if self.get_for_employee_and_date(employee_id, work_date):
            raise ConflictError("An attendance record already exists for this day")
        attendance_id = self._next_id
        self._next_id += 1
        self.records[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id, employee_id=employee_id, work_date=work_date, status=status, **kwargs
        )
        return attendance_id

    def get_by_id(self, attendance_id):
        return self.records.get(int(attendance_id))

    def get_for_employee_and_date(self, employee_id, work_date):
        for r in self.records.values():
            if r.employee_id == int(employee_id) and r.work_date == work_date:
                return r
        return None

    def list_for_employee_between(self, employee_id, start, end):
        return sorted(
            (r for r in self.records.values() if r.employee_id == int(employee_id) and start <= r.work_date <= end),
            key=lambda r: r.work_date,
        )

    def list_for_date(self, work_date):
        return [r for r in self.records.values() if r.work_date == work_date]

    def list_open_for_date(self, work_date):
        return [r for r in self.list_for_date(work_date) if r.punch_in and not r.punch_out]

    def list_by_status_on_dates(self, status, dates):
        return [r for r in self.records.values() if r.status == status and r.work_date in set(dates)]

    def create_punch_in(self, *, employee_id, work_date, punch_in, ip):
        return self._insert(
            employee_id=employee_id,
            work_date=work_date,
            status=AttendanceStatus.PRESENT,
            punch_in=punch_in,
            punch_in_ip=ip,
        )

    def create_record(self, *, employee_id, work_date, status, punch_in=None, punch_out=None, total_hours=None):
        return self._insert(
            employee_id=employee_id,
            work_date=work_date,
            status=status,
            punch_in=punch_in,
            punch_out=punch_out,
            total_hours=total_hours,
        )

    def update_break(self, *, attendance_id, break_start, break_end):
        self.records[attendance_id] = replace(self.records[attendance_id], break_start=break_start, break_end=break_end)
        return True

    def update_punch_out(self, *, attendance_id, punch_out, ip, break_duration, idle_time, total_hours, status):
        record = self.records[attendance_id]
        if record.punch_out is not None:
            return False
        self.records[attendance_id] = replace(
            record,
            punch_out=punch_out,
            punch_out_ip=ip,
            break_duration=break_duration,
            idle_time=idle_time,
            total_hours=total_hours,
            status=status,
        )
        return True

    def update_fields(self, *, attendance_id, changes):
        self.records[attendance_id] = replace(self.records[attendance_id], **dict(changes))
        return True

    def update_status(self, *, attendance_id, status):
        self.records[attendance_id] = replace(self.records[attendance_id], status=status)
        return True

    def status_on(self, employee_id: int, work_date: date) -> Optional[AttendanceStatus]:
        record = self.get_for_employee_and_date(employee_id, work_date)
        return record.status if record else None


class InMemoryHeartbeats:
    def __init__(self, attendance: InMemoryAttendance, employees: InMemoryEmployees):
        self._attendance = attendance
        self._employees = employees
        self.heartbeats: list[ActivityHeartbeat] = []

    def append(self, *, attendance_id, payload: HeartbeatPayload, ip_address):
        heartbeat_id = len(self.heartbeats) + 1
        self.heartbeats.append(
            ActivityHeartbeat(
                heartbeat_id=heartbeat_id,
                attendance_id=attendance_id,
                timestamp=payload.timestamp,
                active=payload.active,
                suspicious=payload.suspicious,
                pattern_type=payload.pattern_type,
                pattern_details=payload.pattern_details,
                confidence=payload.confidence,
                confidence_score=payload.confidence_score,
                duration_ms=payload.duration_ms,
                pattern_start_time=payload.pattern_start_time,
                ip_address=ip_address,
            )
        )
        return heartbeat_id

    def count_inactive(self, attendance_id):
        return sum(1 for h in self.heartbeats if h.attendance_id == attendance_id and not h.active)

    def list_for_attendance(self, attendance_id):
        return [h for h in self.heartbeats if h.attendance_id == attendance_id]

    def list_suspicious_between(self, *, start, end, employee_id=None, limit=500):
        rows = []
        for h in self.heartbeats:
            record = self._attendance.get_by_id(h.attendance_id)
            if not h.suspicious or not start <= record.work_date <= end:
                continue
            if employee_id is not None and record.employee_id != employee_id:
                continue
            employee = self._employees.get_by_id(record.employee_id)
            rows.append(
                SuspiciousHeartbeatRow(
                    employee_id=record.employee_id,
                    employee_name=employee.full_name if employee else None,
                    work_date=record.work_date,
                    heartbeat=h,
                )
            )
        return rows[:limit]


@dataclass
class InMemoryHolidays:
    holidays: list[Holiday] = field(default_factory=list)

    def list_between(self, start, end):
        return [h for h in self.holidays if start <= h.holiday_date <= end]


class RecordingAuditSink:
    def __init__(self):
        self.entries = []
        self.fail = False

    def write(self, entry):
        if self.fail:
            raise RuntimeError("audit store unavailable")
        self.entries.append(entry)


def record_from_draft(payroll_id: int, draft: PayrollDraft, status=PayrollStatus.PENDING) -> PayrollRecord:
    pay, ded = draft.pay, draft.deductions
    return PayrollRecord(
        payroll_id=payroll_id,
        employee_id=draft.employee_id,
        month=draft.month,
        year=draft.year,
        working_days=draft.working_days,
        days_present=draft.days_present,
        days_absent=draft.days_absent,
        basic_salary=pay.basic_salary,
        variable_pay=pay.variable_pay,
        sales_target=pay.sales_target,
        target_achieved=pay.target_achieved,
        basic_payable=pay.basic_payable,
        variable_payable=pay.variable_payable,
        gross_salary=pay.gross_salary,
        professional_tax=ded.professional_tax,
        tds=ded.tds,
        penalties=ded.penalties,
        advance_payment=ded.advance_payment,
        other_deductions=ded.other_deductions,
        total_deductions=draft.total_deductions,
        net_salary=draft.net_salary,
        status=status,
    )


class _InMemoryPayrollTransaction:
    def __init__(self, repo: "InMemoryPayroll"):
        self._repo = repo
        self.staged: dict[int, PayrollRecord] = {}

    def exists(self, *, employee_id, month, year):
        return self._repo.find(employee_id, month, year) is not None

    def achieved_upfront(self, *, employee_id, month, year):
        return achieved_upfront(self._repo.sales, employee_id=employee_id, month=month, year=year)

    def insert(self, draft):
        if self._repo.find(draft.employee_id, draft.month, draft.year):
            raise ConflictError("Payroll already exists for this employee and period")
        if draft.employee_id in self._repo.fail_insert_for:
            raise RuntimeError("insert failed")
        payroll_id = self._repo.next_id()
        self.staged[payroll_id] = record_from_draft(payroll_id, draft)
        return payroll_id


class InMemoryPayroll:
    def __init__(self, sales=()):
        self.records: dict[int, PayrollRecord] = {}
        self.sales = list(sales)
        self.fail_insert_for: set[int] = set()
        self._next_id = 1

    def next_id(self) -> int:
        payroll_id = self._next_id
        self._next_id += 1
        return payroll_id

    def find(self, employee_id, month, year):
        for r in self.records.values():
            if (r.employee_id, r.month, r.year) == (employee_id, month, year):
                return r
        return None

    @contextmanager
    def transaction(self):
        tx = _InMemoryPayrollTransaction(self)
        yield tx
        # only reached when the body did not raise
        self.records.update(tx.staged)

    def get_by_id(self, payroll_id):
        return self.records.get(int(payroll_id))

    def list_for_period(self, *, month, year, employee_id=None):
        return [
            r
            for r in sorted(self.records.values(), key=lambda r: r.employee_id)
            if r.month == month and r.year == year and (employee_id is None or r.employee_id == employee_id)
        ]

    def update_status(self, *, payroll_id, status, expected):
        record = self.records[payroll_id]
        if record.status != expected:
            return False
        self.records[payroll_id] = replace(record, status=status)
        return True

    def update_deductions(self, *, payroll_id, deductions, total_deductions, net_salary):
        record = self.records[payroll_id]
        if record.status == PayrollStatus.PAID:
            return False
        self.records[payroll_id] = replace(
            record,
            penalties=deductions.penalties,
            advance_payment=deductions.advance_payment,
            other_deductions=deductions.other_deductions,
            total_deductions=total_deductions,
            net_salary=net_salary,
        )
        return True

    def delete(self, payroll_id):
        record = self.records.get(payroll_id)
        if record is None or record.status == PayrollStatus.PAID:
            return False
        del self.records[payroll_id]
        return True


@pytest.fixture
def fixed_now() -> datetime:
    # a Wednesday
    return datetime(2025, 3, 12, 9, 0, 0)


@pytest.fixture
def employees() -> InMemoryEmployees:
    repo = InMemoryEmployees()
    repo.add(1, full_name="Admin User")
    repo.add(7, full_name="Asha Rao")
    repo.add(8, full_name="Vikram Shah")
    return repo


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def heartbeats(attendance_repo, employees) -> InMemoryHeartbeats:
    return InMemoryHeartbeats(attendance_repo, employees)


@pytest.fixture
def holidays() -> InMemoryHolidays:
    return InMemoryHolidays()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def audit(audit_sink) -> AuditRecorder:
    return AuditRecorder(audit_sink)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=1, role=Role.ADMIN, name="Admin User")


@pytest.fixture
def manager() -> Actor:
    return Actor(user_id=2, role=Role.MANAGER, name="Meera Manager")


@pytest.fixture
def employee() -> Actor:
    return Actor(user_id=7, role=Role.EMPLOYEE, name="Asha Rao")


@pytest.fixture
def payroll_repo() -> InMemoryPayroll:
    return InMemoryPayroll()
