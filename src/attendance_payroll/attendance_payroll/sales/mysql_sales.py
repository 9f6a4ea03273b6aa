from __future__ import annotations

from typing import List

from ..common.numbers import as_float
from ..core.enums import SaleStatus
from ..database.mysql_base import fetchall
from .model import SaleRecord


def sales_closed_by(cur, *, employee_id: int, month: int, year: int) -> List[SaleRecord]:
    """Read the employee's sales for a period on an already-open cursor.

    Runs on the caller's cursor so payroll generation can read sales and insert
    its record inside one transaction.
    """
    cur.execute(
        """
        SELECT sale_id, net_amount, closed_by, month, year, status
        FROM sales
        WHERE closed_by=%s AND month=%s AND year=%s
        """,
        (int(employee_id), int(month), int(year)),
    )
    return [
        SaleRecord(
            sale_id=int(r["sale_id"]),
            net_amount=as_float(r.get("net_amount")),
            closed_by=int(r["closed_by"]),
            month=int(r["month"]),
            year=int(r["year"]),
            status=SaleStatus(r["status"]),
        )
        for r in fetchall(cur)
    ]
