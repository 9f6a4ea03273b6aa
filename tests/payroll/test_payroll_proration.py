from __future__ import annotations

from datetime import date

import pytest

from src.attendance_payroll.attendance_payroll.attendance.cascade import WeekendCascadeResolver
from src.attendance_payroll.attendance_payroll.core.enums import AttendanceStatus
from src.attendance_payroll.attendance_payroll.core.exceptions import ValidationError
from src.attendance_payroll.attendance_payroll.payroll.model import ProrationWindow
from src.attendance_payroll.attendance_payroll.payroll.proration import (
    AttendanceProrator,
    calculation_date,
    effective_window,
)


def test_calculation_date_stops_at_today_in_running_month():
    assert calculation_date(year=2025, month=3, today=date(2025, 3, 12)) == date(2025, 3, 12)
    assert calculation_date(year=2025, month=2, today=date(2025, 3, 12)) == date(2025, 2, 28)


def test_window_starts_at_join_and_ends_at_leave(employees):
    profile = employees.add(20, date_of_joining=date(2025, 3, 15), leave_date=date(2025, 3, 25))

    window = effective_window(profile, year=2025, month=3, today=date(2025, 4, 5))

    assert window == ProrationWindow(date(2025, 3, 15), date(2025, 3, 25))
    assert window.working_days == 11


def test_window_is_empty_when_joining_after_calculation_date(employees):
    profile = employees.add(20, date_of_joining=date(2025, 3, 20))

    window = effective_window(profile, year=2025, month=3, today=date(2025, 3, 10))

    assert window.is_empty
    assert window.working_days == 0


def test_missing_join_date_is_rejected(employees):
    profile = employees.add(20, date_of_joining=None)

    with pytest.raises(ValidationError):
        effective_window(profile, year=2025, month=3, today=date(2025, 4, 1))


def test_tally_counts_half_days_and_cascaded_weekends(attendance_repo):
    prorator = AttendanceProrator(WeekendCascadeResolver(attendance_repo))
    attendance_repo.seed(7, date(2025, 3, 12), AttendanceStatus.PRESENT)
    attendance_repo.seed(7, date(2025, 3, 13), AttendanceStatus.HALF_DAY)
    attendance_repo.seed(7, date(2025, 3, 14), AttendanceStatus.ABSENT)

    # Wed..Sun: PRESENT, HALF_DAY, ABSENT, cascaded Saturday, plain Sunday
    tally = prorator.tally(7, ProrationWindow(date(2025, 3, 12), date(2025, 3, 16)))

    assert tally.full_days == 2
    assert tally.half_days == 1
    assert tally.present_days == 2.5


def test_tally_of_empty_window_is_zero(attendance_repo):
    prorator = AttendanceProrator(WeekendCascadeResolver(attendance_repo))

    tally = prorator.tally(7, ProrationWindow(date(2025, 3, 20), date(2025, 3, 10)))

    assert tally.present_days == 0
