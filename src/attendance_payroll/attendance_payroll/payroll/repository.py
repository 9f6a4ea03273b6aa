from __future__ import annotations

from typing import ContextManager, Optional, Protocol, Sequence

from ..core.enums import PayrollStatus
from .model import Deductions, PayrollDraft, PayrollRecord


class PayrollTransaction(Protocol):
    """Reads and the insert of one employee's payroll, committed together."""

    def exists(self, *, employee_id: int, month: int, year: int) -> bool:
        raise NotImplementedError

    def achieved_upfront(self, *, employee_id: int, month: int, year: int) -> float:
        raise NotImplementedError

    def insert(self, draft: PayrollDraft) -> int:
        """Raises ConflictError if the (employee, month, year) key already exists."""

        raise NotImplementedError


class PayrollRepository(Protocol):
    def transaction(self) -> ContextManager[PayrollTransaction]:
        raise NotImplementedError

    def get_by_id(self, payroll_id: int) -> Optional[PayrollRecord]:
        raise NotImplementedError

    def list_for_period(self, *, month: int, year: int, employee_id: Optional[int] = None) -> Sequence[PayrollRecord]:
        raise NotImplementedError

    def update_status(self, *, payroll_id: int, status: PayrollStatus, expected: PayrollStatus) -> bool:
        """Compare-and-set on status; False when the record moved meanwhile."""

        raise NotImplementedError

    def update_deductions(
        self,
        *,
        payroll_id: int,
        deductions: Deductions,
        total_deductions: float,
        net_salary: float,
    ) -> bool:
        raise NotImplementedError

    def delete(self, payroll_id: int) -> bool:
        raise NotImplementedError
