from __future__ import annotations

from dataclasses import dataclass, replace

from ..common.numbers import round2
from ..core.constants import DEFAULT_PROFESSIONAL_TAX
from .model import Deductions


@dataclass(frozen=True)
class DeductionPolicy:
    """Deductions applied at generation time.

    TDS is switched off; penalties and advances start at 0 and are entered
    by an admin afterwards.
    """

    professional_tax: float = DEFAULT_PROFESSIONAL_TAX

    def initial(self) -> Deductions:
        return Deductions(professional_tax=self.professional_tax)

    @staticmethod
    def adjusted(current: Deductions, *, penalties: float, advance_payment: float, other_deductions: float) -> Deductions:
        return replace(current, penalties=penalties, advance_payment=advance_payment, other_deductions=other_deductions)


def total_deductions(deductions: Deductions) -> float:
    return round2(deductions.total)


def net_salary(gross: float, deductions: Deductions) -> float:
    return round2(gross - deductions.total)
