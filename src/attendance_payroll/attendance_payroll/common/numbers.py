from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

_CENTS = Decimal("0.01")
_TENTHS = Decimal("0.1")


def round2(value: float) -> float:
    """Round half-up to 2 decimals (money and hours)."""
    return float(Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def round1(value: float) -> float:
    return float(Decimal(str(value)).quantize(_TENTHS, rounding=ROUND_HALF_UP))


def as_float(value: Any, default: float = 0.0) -> float:
    """Coerce DECIMAL/None column values coming from mysql-connector."""
    if value is None:
        return default
    return float(value)


def as_optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)
