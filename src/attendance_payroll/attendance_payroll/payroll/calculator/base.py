from __future__ import annotations

from abc import ABC, abstractmethod

from ...employees.model import EmployeeSalaryProfile
from ..model import PayBreakdown


class SalaryCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    #: Whether the calculator needs the employee's sales for the period.
    needs_sales: bool = False

    @abstractmethod
    def calculate(
        self,
        profile: EmployeeSalaryProfile,
        *,
        present_days: float,
        achieved_upfront: float = 0.0,
    ) -> PayBreakdown:
        raise NotImplementedError
