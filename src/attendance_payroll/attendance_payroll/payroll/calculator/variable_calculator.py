from __future__ import annotations

from ...common.numbers import round2
from ...core.constants import (
    PAYROLL_DAYS_DIVISOR,
    SALES_TARGET_DIVISOR,
    UPFRONT_TARGET_RATIO,
    VARIABLE_FIXED_SHARE,
    VARIABLE_VARIABLE_SHARE,
)
from ...employees.model import EmployeeSalaryProfile
from ..model import PayBreakdown
from .base import SalaryCalculator


def achievement_ratio(achieved: float, required: float) -> float:
    if required <= 0:
        return 0.0
    return min(1.0, max(achieved, 0.0) / required)


class VariableSalaryCalculator(SalaryCalculator):
    """Sales-linked salary.

    70% is fixed and pro-rated by attendance. 30% is paid by how much of the
    upfront target was achieved and ignores attendance. The upfront target is
    30% of the gross sales target (monthly / 10).
    """

    needs_sales = True

    def calculate(
        self,
        profile: EmployeeSalaryProfile,
        *,
        present_days: float,
        achieved_upfront: float = 0.0,
    ) -> PayBreakdown:
        monthly = profile.monthly_salary
        fixed_part = monthly * VARIABLE_FIXED_SHARE
        variable_part = monthly * VARIABLE_VARIABLE_SHARE

        fixed_paid = fixed_part / PAYROLL_DAYS_DIVISOR * present_days

        gross_target = monthly / SALES_TARGET_DIVISOR
        required_upfront = UPFRONT_TARGET_RATIO * gross_target
        variable_paid = variable_part * achievement_ratio(achieved_upfront, required_upfront)

        return PayBreakdown(
            basic_salary=fixed_part,
            variable_pay=variable_part,
            sales_target=gross_target,
            target_achieved=achieved_upfront,
            basic_payable=round2(fixed_paid),
            variable_payable=round2(variable_paid),
            gross_salary=round2(fixed_paid + variable_paid),
        )
