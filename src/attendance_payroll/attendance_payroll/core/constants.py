"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import AttendanceStatus, SaleStatus

# Client cadence. Idle accounting multiplies inactive heartbeats by the same interval.
HEARTBEAT_INTERVAL_SECONDS = 30
IDLE_CHECK_INTERVAL_SECONDS = 60
IDLE_THRESHOLD_SECONDS = 5 * 60

PRESENT_HOURS_THRESHOLD = 6.0

# Payroll
PAYROLL_DAYS_DIVISOR = 30
VARIABLE_FIXED_SHARE = 0.70
VARIABLE_VARIABLE_SHARE = 0.30
SALES_TARGET_DIVISOR = 10
UPFRONT_TARGET_RATIO = 0.30
DEFAULT_PROFESSIONAL_TAX = 200.0

QUALIFYING_SALE_STATUSES = frozenset({SaleStatus.CONFIRMED, SaleStatus.DELIVERED, SaleStatus.PAID})

# Explicit statuses that count as a full paid day.
FULL_DAY_STATUSES = frozenset(
    {AttendanceStatus.PRESENT, AttendanceStatus.LEAVE, AttendanceStatus.WEEKEND, AttendanceStatus.HOLIDAY}
)

DEFAULT_SUSPICIOUS_REPORT_DAYS = 30
DEFAULT_SUSPICIOUS_REPORT_LIMIT = 500
