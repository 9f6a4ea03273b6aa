from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditEntry:
    """Who changed what, from where. Written for every admin-initiated mutation."""

    actor_id: Optional[int]
    actor_name: Optional[str]
    actor_role: Optional[str]
    action: AuditAction
    entity_type: str
    entity_id: Optional[str]
    created_at: datetime
    entity_name: Optional[str] = None
    changes: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def diff_changes(
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    fields: Iterable[str],
) -> Dict[str, Dict[str, Any]]:
    """Build ``{field: {"from": old, "to": new}}`` for the fields that differ."""
    changes: Dict[str, Dict[str, Any]] = {}
    for name in fields:
        old = _plain(before.get(name))
        new = _plain(after.get(name))
        if old != new:
            changes[name] = {"from": old, "to": new}
    return changes
