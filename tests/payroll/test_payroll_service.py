from __future__ import annotations

from datetime import date

import pytest

from src.attendance_payroll.attendance_payroll.attendance.cascade import WeekendCascadeResolver
from src.attendance_payroll.attendance_payroll.common.datetime_utils import is_weekend, iter_days
from src.attendance_payroll.attendance_payroll.core.enums import (
    AttendanceStatus,
    AuditAction,
    GenerationOutcome,
    PayrollStatus,
    SaleStatus,
    SalaryType,
)
from src.attendance_payroll.attendance_payroll.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.attendance_payroll.attendance_payroll.payroll.deductions import DeductionPolicy
from src.attendance_payroll.attendance_payroll.payroll.proration import AttendanceProrator
from src.attendance_payroll.attendance_payroll.payroll.service import PayrollService
from src.attendance_payroll.attendance_payroll.sales.model import SaleRecord


@pytest.fixture
def service(payroll_repo, employees, attendance_repo, audit) -> PayrollService:
    prorator = AttendanceProrator(WeekendCascadeResolver(attendance_repo))
    return PayrollService(payroll_repo, employees, prorator, audit=audit)


def seed_weekdays(repo, employee_id, start, end, *, absent=()):
    for day in iter_days(start, end):
        if is_weekend(day):
            continue
        status = AttendanceStatus.ABSENT if day in absent else AttendanceStatus.PRESENT
        repo.seed(employee_id, day, status)


def generate_one(service, admin, employee_id, *, month, year, today):
    result = service.generate(admin, month=month, year=year, employee_ids=[employee_id], today=today)
    outcome = result.results[0]
    assert outcome.outcome == GenerationOutcome.CREATED, outcome.error
    return service.get(admin, outcome.payroll_id)


def test_mid_month_joiner_is_paid_from_joining_day(service, employees, attendance_repo, admin):
    employees.add(10, date_of_joining=date(2025, 3, 15), monthly_salary=30000)
    seed_weekdays(attendance_repo, 10, date(2025, 3, 15), date(2025, 3, 31))

    record = generate_one(service, admin, 10, month=3, year=2025, today=date(2025, 4, 5))

    assert record.working_days == 17
    assert record.days_present == 17
    assert record.days_absent == 0
    assert record.gross_salary == 17000.0
    assert record.professional_tax == 200.0
    assert record.net_salary == 16800.0
    assert record.status == PayrollStatus.PENDING


def test_friday_and_monday_absences_cost_the_weekend(service, attendance_repo, admin):
    seed_weekdays(
        attendance_repo, 7, date(2025, 3, 1), date(2025, 3, 31), absent={date(2025, 3, 7), date(2025, 3, 10)}
    )

    record = generate_one(service, admin, 7, month=3, year=2025, today=date(2025, 4, 5))

    # two absent weekdays plus the Saturday and Sunday they cascade onto
    assert record.days_present == 27
    assert record.days_absent == 4
    assert record.gross_salary == 27000.0


def test_running_month_stops_at_today(service, attendance_repo, admin):
    seed_weekdays(attendance_repo, 7, date(2025, 3, 1), date(2025, 3, 12))

    record = generate_one(service, admin, 7, month=3, year=2025, today=date(2025, 3, 12))

    assert record.working_days == 12
    assert record.gross_salary == 12000.0


def test_variable_salary_uses_qualifying_sales(service, employees, attendance_repo, payroll_repo, admin):
    employees.add(11, salary_type=SalaryType.VARIABLE, monthly_salary=50000)
    payroll_repo.sales = [
        SaleRecord(1, 1000.0, 11, 4, 2025, SaleStatus.CONFIRMED),
        SaleRecord(2, 600.0, 11, 4, 2025, SaleStatus.PAID),
        SaleRecord(3, 10000.0, 11, 4, 2025, SaleStatus.CANCELLED),
        SaleRecord(4, 5000.0, 12, 4, 2025, SaleStatus.CONFIRMED),
        SaleRecord(5, 3000.0, 11, 3, 2025, SaleStatus.PAID),
    ]
    seed_weekdays(attendance_repo, 11, date(2025, 4, 1), date(2025, 4, 30))

    record = generate_one(service, admin, 11, month=4, year=2025, today=date(2025, 5, 2))

    assert record.target_achieved == 1600.0
    assert record.basic_payable == 35000.0
    assert record.variable_payable == 15000.0
    assert record.gross_salary == 50000.0
    assert record.net_salary == 49800.0


def test_generation_is_idempotent(service, payroll_repo, admin):
    first = service.generate(admin, month=3, year=2025, employee_ids=[7], today=date(2025, 4, 1))
    second = service.generate(admin, month=3, year=2025, employee_ids=[7], today=date(2025, 4, 1))

    assert first.created == 1
    assert second.skipped == 1
    assert len(payroll_repo.records) == 1


def test_join_after_calculation_date_yields_zero_pay(service, employees, admin):
    employees.add(12, date_of_joining=date(2025, 3, 20))

    record = generate_one(service, admin, 12, month=3, year=2025, today=date(2025, 3, 10))

    assert record.working_days == 0
    assert record.days_present == 0
    assert record.gross_salary == 0


def test_batch_continues_past_failures(service, employees, payroll_repo, audit_sink, admin):
    employees.add(13, date_of_joining=None)
    payroll_repo.fail_insert_for = {8}

    result = service.generate(admin, month=3, year=2025, today=date(2025, 4, 1))

    outcomes = {r.employee_id: r.outcome for r in result.results}
    assert outcomes == {
        1: GenerationOutcome.CREATED,
        7: GenerationOutcome.CREATED,
        8: GenerationOutcome.FAILED,
        13: GenerationOutcome.FAILED,
    }
    assert "date of joining" in next(r.error for r in result.results if r.employee_id == 13)
    assert payroll_repo.find(8, 3, 2025) is None
    assert len(audit_sink.entries) == 2


def test_unknown_employee_is_reported(service, admin):
    result = service.generate(admin, month=3, year=2025, employee_ids=[99], today=date(2025, 4, 1))

    assert result.failed == 1
    assert result.results[0].error == "Employee not found"


def test_generation_needs_admin_or_manager(service, employee, manager):
    with pytest.raises(AuthorizationError):
        service.generate(employee, month=3, year=2025)

    result = service.generate(manager, month=3, year=2025, employee_ids=[7], today=date(2025, 4, 1))
    assert result.created == 1


def test_professional_tax_comes_from_policy(payroll_repo, employees, attendance_repo, audit, admin):
    service = PayrollService(
        payroll_repo,
        employees,
        AttendanceProrator(WeekendCascadeResolver(attendance_repo)),
        audit=audit,
        deductions=DeductionPolicy(professional_tax=150),
    )

    record = generate_one(service, admin, 7, month=3, year=2025, today=date(2025, 4, 1))

    assert record.total_deductions == 150.0


def test_status_moves_forward_one_step_at_a_time(service, admin):
    record = generate_one(service, admin, 7, month=3, year=2025, today=date(2025, 4, 1))

    with pytest.raises(ValidationError):
        service.update_status(admin, record.payroll_id, PayrollStatus.PAID)

    approved = service.update_status(admin, record.payroll_id, PayrollStatus.APPROVED)
    paid = service.update_status(admin, approved.payroll_id, PayrollStatus.PAID)

    assert paid.status == PayrollStatus.PAID


def test_paid_payroll_is_immutable(service, admin):
    record = generate_one(service, admin, 7, month=3, year=2025, today=date(2025, 4, 1))
    service.update_status(admin, record.payroll_id, PayrollStatus.APPROVED)
    service.update_status(admin, record.payroll_id, PayrollStatus.PAID)

    with pytest.raises(ConflictError):
        service.update_status(admin, record.payroll_id, PayrollStatus.APPROVED)
    with pytest.raises(ConflictError):
        service.set_adjustments(admin, record.payroll_id, penalties=100, advance_payment=0, other_deductions=0)
    with pytest.raises(ConflictError):
        service.delete(admin, record.payroll_id)


def test_adjustments_recompute_totals(service, audit_sink, admin):
    record = generate_one(service, admin, 7, month=3, year=2025, today=date(2025, 4, 1))

    updated = service.set_adjustments(
        admin, record.payroll_id, penalties=500, advance_payment=1000, other_deductions=0
    )

    assert updated.total_deductions == 1700.0
    assert updated.net_salary == round(record.gross_salary - 1700, 2)
    assert audit_sink.entries[-1].changes["penalties"] == {"from": 0.0, "to": 500.0}


def test_delete_pending_record(service, payroll_repo, audit_sink, admin):
    record = generate_one(service, admin, 7, month=3, year=2025, today=date(2025, 4, 1))

    service.delete(admin, record.payroll_id)

    assert payroll_repo.get_by_id(record.payroll_id) is None
    assert audit_sink.entries[-1].action == AuditAction.DELETE
    with pytest.raises(NotFoundError):
        service.delete(admin, record.payroll_id)


def test_employees_see_only_their_own_payroll(service, employee, admin):
    service.generate(admin, month=3, year=2025, today=date(2025, 4, 1))

    mine = service.list_records(employee, month=3, year=2025, employee_id=8)
    everyone = service.list_records(admin, month=3, year=2025)

    assert [r.employee_id for r in mine] == [7]
    assert len(everyone) == 3
    with pytest.raises(NotFoundError):
        service.get(employee, everyone[-1].payroll_id)
