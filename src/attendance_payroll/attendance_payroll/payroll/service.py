from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional

from ..audit.model import diff_changes
from ..audit.recorder import AuditRecorder
from ..common.numbers import round1, round2
from ..common.datetime_utils import now_local
from ..core.actor import Actor, require_roles
from ..core.enums import AuditAction, GenerationOutcome, PayrollStatus, Role
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.model import EmployeeSalaryProfile
from ..employees.repository import EmployeeRepository
from .calculator.factory import SalaryCalculatorFactory
from .deductions import DeductionPolicy, net_salary, total_deductions
from .model import EmployeePayrollResult, PayrollBatchResult, PayrollDraft, PayrollRecord
from .proration import AttendanceProrator, effective_window
from .repository import PayrollRepository

log = logging.getLogger(__name__)

ENTITY = "Payroll"

_NEXT_STATUS = {
    PayrollStatus.PENDING: PayrollStatus.APPROVED,
    PayrollStatus.APPROVED: PayrollStatus.PAID,
}


class PayrollService:
    """Monthly payroll: generation, approval lifecycle and manual deductions."""

    def __init__(
        self,
        payroll: PayrollRepository,
        employees: EmployeeRepository,
        prorator: AttendanceProrator,
        *,
        audit: AuditRecorder,
        calculators: SalaryCalculatorFactory | None = None,
        deductions: DeductionPolicy | None = None,
    ):
        self._payroll = payroll
        self._employees = employees
        self._prorator = prorator
        self._audit = audit
        self._calculators = calculators or SalaryCalculatorFactory()
        self._deductions = deductions or DeductionPolicy()

    def compute(
        self,
        profile: EmployeeSalaryProfile,
        *,
        month: int,
        year: int,
        today: date,
        achieved_upfront: float = 0.0,
    ) -> PayrollDraft:
        """Pro-rate one employee's pay for the period without persisting anything."""
        window = effective_window(profile, year=year, month=month, today=today)
        tally = self._prorator.tally(profile.employee_id, window)
        calculator = self._calculators.for_salary_type(profile.salary_type)
        pay = calculator.calculate(profile, present_days=tally.present_days, achieved_upfront=achieved_upfront)

        working_days = window.working_days
        deductions = self._deductions.initial()
        return PayrollDraft(
            employee_id=profile.employee_id,
            month=month,
            year=year,
            working_days=round1(working_days),
            days_present=round1(tally.present_days),
            days_absent=round1(max(0.0, working_days - tally.present_days)),
            pay=pay,
            deductions=deductions,
            total_deductions=total_deductions(deductions),
            net_salary=net_salary(pay.gross_salary, deductions),
        )

    def generate(
        self,
        actor: Actor,
        *,
        month: int,
        year: int,
        employee_ids: Optional[Iterable[int]] = None,
        today: date | None = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> PayrollBatchResult:
        """Create PENDING payroll for each employee that has none for the period.

        Re-running is safe: existing records are skipped. One employee failing
        does not stop the batch.
        """
        require_roles(actor, Role.ADMIN, Role.MANAGER)
        today = today or now_local().date()
        result = PayrollBatchResult(month=month, year=year)

        for employee_id, profile in self._targets(employee_ids):
            if profile is None:
                result.results.append(
                    EmployeePayrollResult(employee_id, GenerationOutcome.FAILED, error="Employee not found")
                )
                continue
            outcome = self._generate_one(profile, month=month, year=year, today=today)
            result.results.append(outcome)
            if outcome.outcome == GenerationOutcome.CREATED:
                self._audit.record(
                    actor=actor,
                    action=AuditAction.CREATE,
                    entity_type=ENTITY,
                    entity_id=outcome.payroll_id,
                    entity_name=f"{profile.full_name} - {month:02d}/{year}",
                    changes={"status": {"from": None, "to": PayrollStatus.PENDING.value}},
                    ip_address=ip,
                    user_agent=user_agent,
                )

        log.info(
            "Payroll %02d/%s: created=%s skipped=%s failed=%s",
            month,
            year,
            result.created,
            result.skipped,
            result.failed,
        )
        return result

    def list_records(
        self,
        actor: Actor,
        *,
        month: int,
        year: int,
        employee_id: Optional[int] = None,
    ) -> List[PayrollRecord]:
        if not actor.is_privileged:
            # employees only see their own payslips
            employee_id = actor.user_id
        return list(self._payroll.list_for_period(month=month, year=year, employee_id=employee_id))

    def get(self, actor: Actor, payroll_id: int) -> PayrollRecord:
        record = self._require(payroll_id)
        if not actor.is_privileged and int(record.employee_id) != int(actor.user_id):
            raise NotFoundError("Payroll record not found")
        return record

    def update_status(
        self,
        actor: Actor,
        payroll_id: int,
        status: PayrollStatus,
        *,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> PayrollRecord:
        """PENDING -> APPROVED -> PAID, one step at a time."""
        require_roles(actor, Role.ADMIN)
        record = self._require_mutable(payroll_id)

        if _NEXT_STATUS.get(record.status) != status:
            raise ValidationError(f"Cannot change payroll status from {record.status.value} to {status.value}")
        if not self._payroll.update_status(payroll_id=payroll_id, status=status, expected=record.status):
            raise ConflictError("Payroll record was changed by another request")

        self._audit.record(
            actor=actor,
            action=AuditAction.UPDATE,
            entity_type=ENTITY,
            entity_id=payroll_id,
            entity_name=self._entity_name(record),
            changes={"status": {"from": record.status.value, "to": status.value}},
            ip_address=ip,
            user_agent=user_agent,
        )
        return self._require(payroll_id)

    def set_adjustments(
        self,
        actor: Actor,
        payroll_id: int,
        *,
        penalties: float,
        advance_payment: float,
        other_deductions: float,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> PayrollRecord:
        """Replace the manual deductions and recompute totals."""
        require_roles(actor, Role.ADMIN)
        record = self._require_mutable(payroll_id)

        deductions = DeductionPolicy.adjusted(
            record.deductions,
            penalties=round2(penalties),
            advance_payment=round2(advance_payment),
            other_deductions=round2(other_deductions),
        )
        total = total_deductions(deductions)
        net = net_salary(record.gross_salary, deductions)

        if not self._payroll.update_deductions(
            payroll_id=payroll_id, deductions=deductions, total_deductions=total, net_salary=net
        ):
            raise ConflictError("Paid payroll records cannot be changed")

        updated = self._require(payroll_id)
        self._audit.record(
            actor=actor,
            action=AuditAction.UPDATE,
            entity_type=ENTITY,
            entity_id=payroll_id,
            entity_name=self._entity_name(record),
            changes=diff_changes(
                record.to_dict(),
                updated.to_dict(),
                ("penalties", "advance_payment", "other_deductions", "total_deductions", "net_salary"),
            ),
            ip_address=ip,
            user_agent=user_agent,
        )
        return updated

    def delete(
        self,
        actor: Actor,
        payroll_id: int,
        *,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        require_roles(actor, Role.ADMIN)
        record = self._require_mutable(payroll_id)
        if not self._payroll.delete(payroll_id):
            raise ConflictError("Paid payroll records cannot be deleted")

        self._audit.record(
            actor=actor,
            action=AuditAction.DELETE,
            entity_type=ENTITY,
            entity_id=payroll_id,
            entity_name=self._entity_name(record),
            changes={"net_salary": {"from": record.net_salary, "to": None}},
            ip_address=ip,
            user_agent=user_agent,
        )

    # ----- helpers ----------------------------------------------------------

    def _targets(self, employee_ids: Optional[Iterable[int]]):
        if employee_ids is None:
            return [(p.employee_id, p) for p in self._employees.list_active()]
        return [(int(i), self._employees.get_by_id(int(i))) for i in employee_ids]

    def _generate_one(
        self,
        profile: EmployeeSalaryProfile,
        *,
        month: int,
        year: int,
        today: date,
    ) -> EmployeePayrollResult:
        employee_id = profile.employee_id
        try:
            with self._payroll.transaction() as tx:
                if tx.exists(employee_id=employee_id, month=month, year=year):
                    return EmployeePayrollResult(employee_id, GenerationOutcome.SKIPPED)

                achieved = 0.0
                if self._calculators.for_salary_type(profile.salary_type).needs_sales:
                    achieved = tx.achieved_upfront(employee_id=employee_id, month=month, year=year)

                draft = self.compute(profile, month=month, year=year, today=today, achieved_upfront=achieved)
                payroll_id = tx.insert(draft)
        except ConflictError:
            # another run inserted the same period first
            return EmployeePayrollResult(employee_id, GenerationOutcome.SKIPPED)
        except Exception as exc:
            log.exception("Payroll generation failed for employee %s (%02d/%s)", employee_id, month, year)
            return EmployeePayrollResult(employee_id, GenerationOutcome.FAILED, error=str(exc))

        return EmployeePayrollResult(employee_id, GenerationOutcome.CREATED, payroll_id=payroll_id)

    def _require(self, payroll_id: int) -> PayrollRecord:
        record = self._payroll.get_by_id(payroll_id)
        if not record:
            raise NotFoundError("Payroll record not found")
        return record

    def _require_mutable(self, payroll_id: int) -> PayrollRecord:
        record = self._require(payroll_id)
        if record.status == PayrollStatus.PAID:
            raise ConflictError("Paid payroll records cannot be changed")
        return record

    def _entity_name(self, record: PayrollRecord) -> str:
        employee = self._employees.get_by_id(record.employee_id)
        name = employee.full_name if employee else f"#{record.employee_id}"
        return f"{name} - {record.month:02d}/{record.year}"
