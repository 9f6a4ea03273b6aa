from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.numbers import as_float
from ..core.enums import SalaryType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import EmployeeSalaryProfile
from .repository import EmployeeRepository

_COLUMNS = "employee_id, full_name, monthly_salary, salary_type, date_of_joining, leave_date"


def _to_profile(r: Dict[str, Any]) -> EmployeeSalaryProfile:
    return EmployeeSalaryProfile(
        employee_id=int(r["employee_id"]),
        full_name=r["full_name"],
        monthly_salary=as_float(r.get("monthly_salary")),
        salary_type=SalaryType(r["salary_type"]),
        date_of_joining=r.get("date_of_joining"),
        leave_date=r.get("leave_date"),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[EmployeeSalaryProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s", (int(employee_id),))
            r = fetchone(cur)
            return _to_profile(r) if r else None

    def list_active(self) -> Sequence[EmployeeSalaryProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE is_active=1 ORDER BY employee_id")
            return [_to_profile(r) for r in fetchall(cur)]
