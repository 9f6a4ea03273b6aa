from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..common.datetime_utils import now_local
from ..core.actor import Actor
from ..core.enums import AuditAction
from .model import AuditEntry
from .repository import AuditSink

log = logging.getLogger(__name__)


class AuditRecorder:
    """Writes audit entries as a side effect of a mutation.

    A failing sink is logged and swallowed: the mutation it describes has
    already been committed and must stand.
    """

    def __init__(self, sink: AuditSink):
        self._sink = sink

    def record(
        self,
        *,
        actor: Actor,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        entity_name: Optional[str] = None,
        changes: Optional[Dict[str, Dict[str, Any]]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: datetime | None = None,
    ) -> bool:
        entry = AuditEntry(
            actor_id=actor.user_id,
            actor_name=actor.name,
            actor_role=actor.role.value,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            entity_name=entity_name,
            changes=dict(changes or {}),
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now or now_local(),
        )
        try:
            self._sink.write(entry)
        except Exception:
            log.exception("Failed to write audit log for %s %s:%s", action.value, entity_type, entry.entity_id)
            return False
        log.debug("Audit logged: %s %s:%s by %s", action.value, entity_type, entry.entity_id, actor.user_id)
        return True
