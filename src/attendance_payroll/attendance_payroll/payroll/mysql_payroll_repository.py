from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Sequence

from ..common.numbers import as_float
from ..core.enums import PayrollStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import conflict_on_lost_race, db_cursor, fetchall, fetchone
from ..sales.model import achieved_upfront
from ..sales.mysql_sales import sales_closed_by
from .model import Deductions, PayrollDraft, PayrollRecord
from .repository import PayrollRepository, PayrollTransaction

_COLUMNS = """
    payroll_id, employee_id, month, year, working_days, days_present, days_absent,
    basic_salary, variable_pay, sales_target, target_achieved, basic_payable, variable_payable,
    gross_salary, professional_tax, tds, penalties, advance_payment, other_deductions,
    total_deductions, net_salary, status
"""

_FLOAT_FIELDS = (
    "working_days",
    "days_present",
    "days_absent",
    "basic_salary",
    "variable_pay",
    "sales_target",
    "target_achieved",
    "basic_payable",
    "variable_payable",
    "gross_salary",
    "professional_tax",
    "tds",
    "penalties",
    "advance_payment",
    "other_deductions",
    "total_deductions",
    "net_salary",
)


def _to_record(r: Dict[str, Any]) -> PayrollRecord:
    return PayrollRecord(
        payroll_id=int(r["payroll_id"]),
        employee_id=int(r["employee_id"]),
        month=int(r["month"]),
        year=int(r["year"]),
        status=PayrollStatus(r["status"]),
        **{name: as_float(r.get(name)) for name in _FLOAT_FIELDS},
    )


class _MySQLPayrollTransaction(PayrollTransaction):
    def __init__(self, cur):
        self._cur = cur

    def exists(self, *, employee_id: int, month: int, year: int) -> bool:
        self._cur.execute(
            "SELECT payroll_id FROM payroll_records WHERE employee_id=%s AND month=%s AND year=%s FOR UPDATE",
            (int(employee_id), int(month), int(year)),
        )
        return fetchone(self._cur) is not None

    def achieved_upfront(self, *, employee_id: int, month: int, year: int) -> float:
        sales = sales_closed_by(self._cur, employee_id=employee_id, month=month, year=year)
        return achieved_upfront(sales, employee_id=employee_id, month=month, year=year)

    def insert(self, draft: PayrollDraft) -> int:
        pay = draft.pay
        ded = draft.deductions
        with conflict_on_lost_race("Payroll already exists for this employee and period"):
            self._cur.execute(
                """
                INSERT INTO payroll_records (
                    employee_id, month, year, working_days, days_present, days_absent,
                    basic_salary, variable_pay, sales_target, target_achieved,
                    basic_payable, variable_payable, gross_salary,
                    professional_tax, tds, penalties, advance_payment, other_deductions,
                    total_deductions, net_salary, status
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    int(draft.employee_id),
                    int(draft.month),
                    int(draft.year),
                    draft.working_days,
                    draft.days_present,
                    draft.days_absent,
                    pay.basic_salary,
                    pay.variable_pay,
                    pay.sales_target,
                    pay.target_achieved,
                    pay.basic_payable,
                    pay.variable_payable,
                    pay.gross_salary,
                    ded.professional_tax,
                    ded.tds,
                    ded.penalties,
                    ded.advance_payment,
                    ded.other_deductions,
                    draft.total_deductions,
                    draft.net_salary,
                    PayrollStatus.PENDING.value,
                ),
            )
        return int(self._cur.lastrowid)


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @contextmanager
    def transaction(self) -> Iterator[PayrollTransaction]:
        # one connection, committed by db_cursor on clean exit
        with db_cursor(self._conn_factory) as (_, cur):
            yield _MySQLPayrollTransaction(cur)

    def get_by_id(self, payroll_id: int) -> Optional[PayrollRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM payroll_records WHERE payroll_id=%s", (int(payroll_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_period(self, *, month: int, year: int, employee_id: Optional[int] = None) -> Sequence[PayrollRecord]:
        sql = f"SELECT {_COLUMNS} FROM payroll_records WHERE month=%s AND year=%s"
        params: list = [int(month), int(year)]
        if employee_id is not None:
            sql += " AND employee_id=%s"
            params.append(int(employee_id))
        sql += " ORDER BY employee_id"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]

    def update_status(self, *, payroll_id: int, status: PayrollStatus, expected: PayrollStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE payroll_records SET status=%s WHERE payroll_id=%s AND status=%s",
                (status.value, int(payroll_id), expected.value),
            )
            return cur.rowcount > 0

    def update_deductions(
        self,
        *,
        payroll_id: int,
        deductions: Deductions,
        total_deductions: float,
        net_salary: float,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            # status is checked under the row lock; rowcount is 0 for an identical resubmit
            cur.execute("SELECT status FROM payroll_records WHERE payroll_id=%s FOR UPDATE", (int(payroll_id),))
            row = fetchone(cur)
            if not row or row["status"] == PayrollStatus.PAID.value:
                return False

            cur.execute(
                """
                UPDATE payroll_records
                SET penalties=%s, advance_payment=%s, other_deductions=%s,
                    total_deductions=%s, net_salary=%s
                WHERE payroll_id=%s
                """,
                (
                    deductions.penalties,
                    deductions.advance_payment,
                    deductions.other_deductions,
                    total_deductions,
                    net_salary,
                    int(payroll_id),
                ),
            )
            return True

    def delete(self, payroll_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM payroll_records WHERE payroll_id=%s AND status<>%s",
                (int(payroll_id), PayrollStatus.PAID.value),
            )
            return cur.rowcount > 0
