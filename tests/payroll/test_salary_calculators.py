from __future__ import annotations

import pytest

from src.attendance_payroll.attendance_payroll.core.enums import SalaryType
from src.attendance_payroll.attendance_payroll.employees.model import EmployeeSalaryProfile
from src.attendance_payroll.attendance_payroll.payroll.calculator.factory import SalaryCalculatorFactory
from src.attendance_payroll.attendance_payroll.payroll.calculator.fixed_calculator import FixedSalaryCalculator
from src.attendance_payroll.attendance_payroll.payroll.calculator.variable_calculator import (
    VariableSalaryCalculator,
    achievement_ratio,
)


def _profile(salary_type: SalaryType, monthly: float) -> EmployeeSalaryProfile:
    return EmployeeSalaryProfile(employee_id=7, full_name="Asha Rao", monthly_salary=monthly, salary_type=salary_type)


def test_fixed_pays_one_thirtieth_per_present_day():
    pay = FixedSalaryCalculator().calculate(_profile(SalaryType.FIXED, 30000), present_days=27.5)

    assert pay.basic_salary == 30000
    assert pay.basic_payable == 27500.0
    assert pay.variable_payable == 0
    assert pay.gross_salary == 27500.0


def test_variable_full_target_pays_whole_variable_part():
    pay = VariableSalaryCalculator().calculate(
        _profile(SalaryType.VARIABLE, 50000), present_days=30, achieved_upfront=1600
    )

    assert pay.basic_salary == pytest.approx(35000)
    assert pay.variable_pay == pytest.approx(15000)
    assert pay.sales_target == pytest.approx(5000)
    assert pay.basic_payable == 35000.0
    assert pay.variable_payable == 15000.0
    assert pay.gross_salary == 50000.0


def test_variable_part_ignores_attendance():
    pay = VariableSalaryCalculator().calculate(
        _profile(SalaryType.VARIABLE, 50000), present_days=15, achieved_upfront=750
    )

    assert pay.basic_payable == 17500.0
    assert pay.variable_payable == 7500.0
    assert pay.gross_salary == 25000.0


def test_achievement_ratio_is_capped_and_safe():
    assert achievement_ratio(3000, 1500) == 1.0
    assert achievement_ratio(-10, 1500) == 0.0
    assert achievement_ratio(100, 0) == 0.0


def test_factory_picks_calculator_by_salary_type():
    factory = SalaryCalculatorFactory()

    assert isinstance(factory.for_salary_type(SalaryType.FIXED), FixedSalaryCalculator)
    assert factory.for_salary_type(SalaryType.VARIABLE).needs_sales
    with pytest.raises(ValueError):
        factory.for_salary_type("HOURLY")
