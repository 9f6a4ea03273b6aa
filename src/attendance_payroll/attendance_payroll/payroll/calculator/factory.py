from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from ...core.enums import SalaryType
from .base import SalaryCalculator
from .fixed_calculator import FixedSalaryCalculator
from .variable_calculator import VariableSalaryCalculator


@dataclass
class SalaryCalculatorFactory:
    """Factory Pattern: choose the calculator for an employee's salary type."""

    calculators: Dict[SalaryType, SalaryCalculator] = field(
        default_factory=lambda: {
            SalaryType.FIXED: FixedSalaryCalculator(),
            SalaryType.VARIABLE: VariableSalaryCalculator(),
        }
    )

    def for_salary_type(self, salary_type: SalaryType) -> SalaryCalculator:
        try:
            return self.calculators[salary_type]
        except KeyError:
            raise ValueError(f"No calculator for salary type {salary_type!r}")
