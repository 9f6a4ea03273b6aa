from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..common.datetime_utils import hours_between
from ..common.numbers import round2
from ..core.constants import PRESENT_HOURS_THRESHOLD
from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, PunchOutSummary


class WorkedTimeCalculator:
    """Standard rule: (out - in) - break, not below 0.

    Only the latest break window is stored on a record, so it is the only one
    deducted. A break still open at punch-out runs until punch-out.
    """

    def __init__(self, *, present_threshold_hours: float = PRESENT_HOURS_THRESHOLD):
        self._present_threshold = float(present_threshold_hours)

    @staticmethod
    def break_hours(
        *,
        break_start: Optional[datetime],
        break_end: Optional[datetime],
        punch_out: datetime,
    ) -> float:
        if break_start is None:
            return 0.0
        end = break_end if break_end is not None else punch_out
        return max(hours_between(break_start, end), 0.0)

    def status_for(self, total_hours: float) -> AttendanceStatus:
        if total_hours >= self._present_threshold:
            return AttendanceStatus.PRESENT
        return AttendanceStatus.HALF_DAY

    def summarize(self, record: AttendanceRecord, *, punch_out: datetime, idle_hours: float) -> PunchOutSummary:
        if record.punch_in is None:
            raise ValueError("Cannot summarize a record without punch-in")

        elapsed = hours_between(record.punch_in, punch_out)
        breaks = self.break_hours(break_start=record.break_start, break_end=record.break_end, punch_out=punch_out)
        total = round2(max(elapsed - breaks, 0.0))

        # Status follows the stored (rounded) figure.
        return PunchOutSummary(
            break_duration=round2(breaks),
            idle_time=round2(idle_hours),
            total_hours=total,
            status=self.status_for(total),
        )
