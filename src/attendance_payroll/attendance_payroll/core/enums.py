from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used for authorization checks."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class AttendanceStatus(str, Enum):
    """Per-day attendance status stored in the database."""

    PRESENT = "PRESENT"
    HALF_DAY = "HALF_DAY"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"
    HOLIDAY = "HOLIDAY"
    WEEKEND = "WEEKEND"


class DayState(str, Enum):
    """Where a work session stands within its day."""

    NOT_PUNCHED_IN = "NOT_PUNCHED_IN"
    PUNCHED_IN = "PUNCHED_IN"
    ON_BREAK = "ON_BREAK"
    PUNCHED_OUT = "PUNCHED_OUT"


class AttendanceAction(str, Enum):
    PUNCH_IN = "punch-in"
    PUNCH_OUT = "punch-out"
    BREAK_START = "break-start"
    BREAK_END = "break-end"


class SalaryType(str, Enum):
    FIXED = "FIXED"
    VARIABLE = "VARIABLE"


class PayrollStatus(str, Enum):
    """Payroll lifecycle. PAID is terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"


class SaleStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DELIVERED = "DELIVERED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class Confidence(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class PatternType(str, Enum):
    """Synthetic input patterns recognised by the activity classifier."""

    STATIC_POINTER = "STATIC_POINTER"
    OSCILLATING_POINTER = "OSCILLATING_POINTER"
    LINEAR_POINTER = "LINEAR_POINTER"
    REPETITIVE_KEY = "REPETITIVE_KEY"
    REGULAR_INTERVAL_KEYS = "REGULAR_INTERVAL_KEYS"
    ALTERNATING_KEYS = "ALTERNATING_KEYS"
    STATIC_CLICK = "STATIC_CLICK"
    REGULAR_INTERVAL_CLICKS = "REGULAR_INTERVAL_CLICKS"
    ALTERNATING_CLICKS = "ALTERNATING_CLICKS"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class GenerationOutcome(str, Enum):
    """Per-employee result of a payroll batch run."""

    CREATED = "CREATED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"
