from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import EmployeeSalaryProfile


class EmployeeRepository(Protocol):
    def get_by_id(self, employee_id: int) -> Optional[EmployeeSalaryProfile]:
        raise NotImplementedError

    def list_active(self) -> Sequence[EmployeeSalaryProfile]:
        raise NotImplementedError
