from __future__ import annotations

from datetime import date

import mysql.connector
import pytest
from mysql.connector import errorcode

from src.attendance_payroll.attendance_payroll.attendance.cascade import WeekendCascadeResolver
from src.attendance_payroll.attendance_payroll.core.enums import GenerationOutcome, PayrollStatus
from src.attendance_payroll.attendance_payroll.core.exceptions import ConflictError
from src.attendance_payroll.attendance_payroll.payroll.model import Deductions, PayBreakdown, PayrollDraft
from src.attendance_payroll.attendance_payroll.payroll.mysql_payroll_repository import MySQLPayrollRepository
from src.attendance_payroll.attendance_payroll.payroll.proration import AttendanceProrator
from src.attendance_payroll.attendance_payroll.payroll.service import PayrollService

_DEDUCTION_COLUMNS = ("penalties", "advance_payment", "other_deductions", "total_deductions", "net_salary")


class PayrollRowCursor:
    """One payroll row; UPDATE rowcount counts changed rows, as MySQL does by default."""

    def __init__(self, row: dict, *, insert_error: Exception | None = None):
        self.row = row
        self.insert_error = insert_error
        self.statements: list[str] = []
        self.rowcount = 0
        self.lastrowid = None
        self._result = None

    def execute(self, sql, params=()):
        text = " ".join(sql.split())
        self.statements.append(text)
        if text.startswith("SELECT status"):
            self._result = {"status": self.row["status"]} if params[0] == self.row["payroll_id"] else None
        elif text.startswith("SELECT payroll_id, employee_id"):
            self._result = dict(self.row) if params[0] == self.row["payroll_id"] else None
        elif text.startswith("SELECT payroll_id FROM"):
            self._result = None
        elif text.startswith("UPDATE payroll_records SET penalties"):
            values = dict(zip(_DEDUCTION_COLUMNS, params[:5]))
            self.rowcount = 1 if any(self.row[k] != v for k, v in values.items()) else 0
            self.row.update(values)
        elif text.startswith("INSERT INTO payroll_records"):
            if self.insert_error:
                raise self.insert_error
            self.lastrowid = 99

    def fetchone(self):
        result, self._result = self._result, None
        return result

    def fetchall(self):
        return []

    def close(self):
        pass


class FakeConnection:
    def __init__(self, cur):
        self.cur = cur
        self.committed = False
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return self.cur

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeConnectionFactory:
    def __init__(self, cur):
        self.connection = FakeConnection(cur)

    def connect(self):
        return self.connection


def _row(status: PayrollStatus) -> dict:
    return {
        "payroll_id": 5,
        "employee_id": 7,
        "month": 2,
        "year": 2025,
        "gross_salary": 30000.0,
        "professional_tax": 200.0,
        "status": status.value,
        "penalties": 100.0,
        "advance_payment": 0.0,
        "other_deductions": 0.0,
        "total_deductions": 300.0,
        "net_salary": 29700.0,
    }


def _same_deductions(repo: MySQLPayrollRepository) -> bool:
    return repo.update_deductions(
        payroll_id=5,
        deductions=Deductions(professional_tax=200.0, penalties=100.0),
        total_deductions=300.0,
        net_salary=29700.0,
    )


def test_identical_adjustments_on_pending_record_are_accepted():
    cur = PayrollRowCursor(_row(PayrollStatus.PENDING))
    repo = MySQLPayrollRepository(FakeConnectionFactory(cur))

    assert _same_deductions(repo) is True
    assert cur.rowcount == 0
    assert cur.statements[0].endswith("FOR UPDATE")


def test_adjustments_on_paid_record_are_refused_without_writing():
    cur = PayrollRowCursor(_row(PayrollStatus.PAID))
    repo = MySQLPayrollRepository(FakeConnectionFactory(cur))

    assert _same_deductions(repo) is False
    assert not any(s.startswith("UPDATE") for s in cur.statements)


def test_adjustments_on_missing_record_are_refused():
    cur = PayrollRowCursor(_row(PayrollStatus.PENDING))
    repo = MySQLPayrollRepository(FakeConnectionFactory(cur))

    assert repo.update_deductions(
        payroll_id=6, deductions=Deductions(), total_deductions=0.0, net_salary=0.0
    ) is False


def test_resubmitting_same_adjustments_through_service(employees, attendance_repo, audit, audit_sink, admin):
    cur = PayrollRowCursor(_row(PayrollStatus.PENDING))
    repo = MySQLPayrollRepository(FakeConnectionFactory(cur))
    service = PayrollService(repo, employees, AttendanceProrator(WeekendCascadeResolver(attendance_repo)), audit=audit)

    record = service.set_adjustments(admin, 5, penalties=100, advance_payment=0, other_deductions=0)

    assert record.status == PayrollStatus.PENDING
    assert record.net_salary == 29700.0
    assert audit_sink.entries[-1].changes == {}


def test_deadlocked_insert_is_reported_as_conflict_and_rolled_back():
    deadlock = mysql.connector.errors.InternalError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK)
    cur = PayrollRowCursor(_row(PayrollStatus.PENDING), insert_error=deadlock)
    factory = FakeConnectionFactory(cur)
    repo = MySQLPayrollRepository(factory)

    with pytest.raises(ConflictError):
        with repo.transaction() as tx:
            tx.insert(_draft())

    assert factory.connection.rolled_back
    assert not factory.connection.committed


def test_other_database_errors_still_propagate():
    cur = PayrollRowCursor(
        _row(PayrollStatus.PENDING),
        insert_error=mysql.connector.errors.DatabaseError(msg="Lock wait timeout", errno=errorcode.ER_LOCK_WAIT_TIMEOUT),
    )
    repo = MySQLPayrollRepository(FakeConnectionFactory(cur))

    with pytest.raises(mysql.connector.errors.DatabaseError):
        with repo.transaction() as tx:
            tx.insert(_draft())


def test_generation_losing_a_deadlock_is_skipped(employees, attendance_repo, audit, admin):
    deadlock = mysql.connector.errors.InternalError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK)
    repo = MySQLPayrollRepository(FakeConnectionFactory(PayrollRowCursor(_row(PayrollStatus.PENDING), insert_error=deadlock)))
    service = PayrollService(repo, employees, AttendanceProrator(WeekendCascadeResolver(attendance_repo)), audit=audit)

    result = service.generate(admin, month=2, year=2025, employee_ids=[7], today=date(2025, 3, 12))

    assert [r.outcome for r in result.results] == [GenerationOutcome.SKIPPED]
    assert result.failed == 0


def _draft():
    return PayrollDraft(
        employee_id=7,
        month=2,
        year=2025,
        working_days=28.0,
        days_present=28.0,
        days_absent=0.0,
        pay=PayBreakdown(
            basic_salary=30000.0,
            variable_pay=0.0,
            sales_target=0.0,
            target_achieved=0.0,
            basic_payable=28000.0,
            variable_payable=0.0,
            gross_salary=28000.0,
        ),
        deductions=Deductions(professional_tax=200.0),
        total_deductions=200.0,
        net_salary=27800.0,
    )
