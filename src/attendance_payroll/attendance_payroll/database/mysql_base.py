from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def conflict_on_duplicate(message: str) -> Iterator[None]:
    """Turn a unique-key violation into a ConflictError."""
    try:
        yield
    except mysql.connector.IntegrityError as exc:
        if getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY:
            raise ConflictError(message) from exc
        raise


@contextmanager
def conflict_on_lost_race(message: str) -> Iterator[None]:
    """Like ``conflict_on_duplicate``, but also for a deadlock between two writers of the same new key.

    InnoDB gap locks taken by ``SELECT ... FOR UPDATE`` on a missing row make
    the second INSERT fail with ER_LOCK_DEADLOCK instead of ER_DUP_ENTRY.
    """
    try:
        yield
    except mysql.connector.Error as exc:
        if getattr(exc, "errno", None) in (errorcode.ER_DUP_ENTRY, errorcode.ER_LOCK_DEADLOCK):
            raise ConflictError(message) from exc
        raise


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
