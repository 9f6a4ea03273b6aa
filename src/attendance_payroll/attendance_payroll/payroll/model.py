from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from ..common.datetime_utils import days_inclusive
from ..core.enums import GenerationOutcome, PayrollStatus


@dataclass(frozen=True)
class ProrationWindow:
    """Days of the month the employee is paid for: [start, end], possibly empty."""

    start: date
    end: date

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    @property
    def working_days(self) -> int:
        return days_inclusive(self.start, self.end)


@dataclass(frozen=True)
class AttendanceTally:
    full_days: int = 0
    half_days: int = 0

    @property
    def present_days(self) -> float:
        return self.full_days + 0.5 * self.half_days


@dataclass(frozen=True)
class PayBreakdown:
    basic_salary: float
    variable_pay: float
    sales_target: float
    target_achieved: float
    basic_payable: float
    variable_payable: float
    gross_salary: float


@dataclass(frozen=True)
class Deductions:
    professional_tax: float = 0.0
    tds: float = 0.0
    penalties: float = 0.0
    advance_payment: float = 0.0
    other_deductions: float = 0.0

    @property
    def total(self) -> float:
        return self.professional_tax + self.tds + self.penalties + self.advance_payment + self.other_deductions


@dataclass(frozen=True)
class PayrollDraft:
    """Computed payroll, not yet persisted."""

    employee_id: int
    month: int
    year: int
    working_days: float
    days_present: float
    days_absent: float
    pay: PayBreakdown
    deductions: Deductions
    total_deductions: float
    net_salary: float


@dataclass(frozen=True)
class PayrollRecord:
    payroll_id: int
    employee_id: int
    month: int
    year: int
    working_days: float
    days_present: float
    days_absent: float
    basic_salary: float
    variable_pay: float
    sales_target: float
    target_achieved: float
    basic_payable: float
    variable_payable: float
    gross_salary: float
    professional_tax: float
    tds: float
    penalties: float
    advance_payment: float
    other_deductions: float
    total_deductions: float
    net_salary: float
    status: PayrollStatus

    @property
    def deductions(self) -> Deductions:
        return Deductions(
            professional_tax=self.professional_tax,
            tds=self.tds,
            penalties=self.penalties,
            advance_payment=self.advance_payment,
            other_deductions=self.other_deductions,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class EmployeePayrollResult:
    employee_id: int
    outcome: GenerationOutcome
    payroll_id: Optional[int] = None
    error: Optional[str] = None


@dataclass
class PayrollBatchResult:
    month: int
    year: int
    results: List[EmployeePayrollResult] = field(default_factory=list)

    def count(self, outcome: GenerationOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def created(self) -> int:
        return self.count(GenerationOutcome.CREATED)

    @property
    def skipped(self) -> int:
        return self.count(GenerationOutcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(GenerationOutcome.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "year": self.year,
            "created": self.created,
            "skipped": self.skipped,
            "failed": self.failed,
            "results": [
                {
                    "employee_id": r.employee_id,
                    "outcome": r.outcome.value,
                    "payroll_id": r.payroll_id,
                    "error": r.error,
                }
                for r in self.results
            ],
        }
