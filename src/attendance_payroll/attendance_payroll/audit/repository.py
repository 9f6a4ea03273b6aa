from __future__ import annotations

from typing import Protocol

from .model import AuditEntry


class AuditSink(Protocol):
    def write(self, entry: AuditEntry) -> None:
        raise NotImplementedError
