from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..core.constants import QUALIFYING_SALE_STATUSES
from ..core.enums import SaleStatus


@dataclass(frozen=True)
class SaleRecord:
    """Sales ledger row. Only ``net_amount`` of qualifying deals counts towards targets."""

    sale_id: int
    net_amount: float
    closed_by: int
    month: int
    year: int
    status: SaleStatus


def achieved_upfront(sales: Iterable[SaleRecord], *, employee_id: int, month: int, year: int) -> float:
    """Sum of net amounts closed by the employee in the period with a qualifying status."""
    return sum(
        s.net_amount
        for s in sales
        if s.closed_by == employee_id
        and s.month == month
        and s.year == year
        and s.status in QUALIFYING_SALE_STATUSES
    )
