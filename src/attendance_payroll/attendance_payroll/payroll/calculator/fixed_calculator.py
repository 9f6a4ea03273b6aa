from __future__ import annotations

from ...common.numbers import round2
from ...core.constants import PAYROLL_DAYS_DIVISOR
from ...employees.model import EmployeeSalaryProfile
from ..model import PayBreakdown
from .base import SalaryCalculator


class FixedSalaryCalculator(SalaryCalculator):
    """monthly / 30 per present day."""

    def calculate(
        self,
        profile: EmployeeSalaryProfile,
        *,
        present_days: float,
        achieved_upfront: float = 0.0,
    ) -> PayBreakdown:
        paid = profile.monthly_salary / PAYROLL_DAYS_DIVISOR * present_days
        return PayBreakdown(
            basic_salary=profile.monthly_salary,
            variable_pay=0.0,
            sales_target=0.0,
            target_achieved=0.0,
            basic_payable=round2(paid),
            variable_payable=0.0,
            gross_salary=round2(paid),
        )
