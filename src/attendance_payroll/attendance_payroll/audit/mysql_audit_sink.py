from __future__ import annotations

import json

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .model import AuditEntry
from .repository import AuditSink


class MySQLAuditSink(AuditSink):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def write(self, entry: AuditEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(
                    actor_id, actor_name, actor_role, action, entity_type, entity_id,
                    entity_name, changes, ip_address, user_agent, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    entry.actor_id,
                    entry.actor_name,
                    entry.actor_role,
                    entry.action.value,
                    entry.entity_type,
                    entry.entity_id,
                    entry.entity_name,
                    json.dumps(entry.changes, default=str),
                    entry.ip_address,
                    (entry.user_agent or "")[:300] or None,
                    entry.created_at,
                ),
            )
