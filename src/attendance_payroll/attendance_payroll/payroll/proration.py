from __future__ import annotations

from datetime import date

from ..attendance.cascade import WeekendCascadeResolver, effective_status
from ..common.datetime_utils import iter_days, month_bounds
from ..core.constants import FULL_DAY_STATUSES
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..employees.model import EmployeeSalaryProfile
from .model import AttendanceTally, ProrationWindow


def calculation_date(*, year: int, month: int, today: date) -> date:
    """Last day that can count: today for the running month, month end otherwise."""
    _, month_end = month_bounds(year, month)
    return min(today, month_end)


def effective_window(profile: EmployeeSalaryProfile, *, year: int, month: int, today: date) -> ProrationWindow:
    if profile.date_of_joining is None:
        raise ValidationError(f"Employee {profile.employee_id} has no date of joining")

    month_start, _ = month_bounds(year, month)
    calc_date = calculation_date(year=year, month=month, today=today)
    end = min(calc_date, profile.leave_date) if profile.leave_date else calc_date
    return ProrationWindow(start=max(profile.date_of_joining, month_start), end=end)


class AttendanceProrator:
    """Counts paid days in a window, reading attendance through the cascade rule.

    PRESENT/LEAVE/WEEKEND/HOLIDAY count 1, HALF_DAY 0.5, anything else 0.
    A weekday without a record counts 0; a weekend without one counts 1
    unless the adjacent Friday/Monday was ABSENT.
    """

    def __init__(self, cascade: WeekendCascadeResolver):
        self._cascade = cascade

    def tally(self, employee_id: int, window: ProrationWindow) -> AttendanceTally:
        if window.is_empty:
            return AttendanceTally()

        by_date = self._cascade.records_by_date(employee_id, window.start, window.end)
        full = half = 0
        for day in iter_days(window.start, window.end):
            status = effective_status(day, by_date)
            if status in FULL_DAY_STATUSES:
                full += 1
            elif status == AttendanceStatus.HALF_DAY:
                half += 1
        return AttendanceTally(full_days=full, half_days=half)
