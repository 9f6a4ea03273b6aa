from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import SalaryType


@dataclass(frozen=True)
class EmployeeSalaryProfile:
    """Read-only slice of the employee directory used by attendance and payroll."""

    employee_id: int
    full_name: str
    monthly_salary: float
    salary_type: SalaryType
    date_of_joining: Optional[date] = None
    leave_date: Optional[date] = None

    def has_joined_by(self, day: date) -> bool:
        return self.date_of_joining is not None and self.date_of_joining <= day

    def has_left_before(self, day: date) -> bool:
        return self.leave_date is not None and self.leave_date < day
