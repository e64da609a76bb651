"""Audit trail values and the append-only log port."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID


@dataclass(frozen=True)
class AuditRecord:
    action: str
    actor: str
    vendor_id: UUID | None = None
    reason: str = ''
    details: dict = field(default_factory=dict)
    timestamp: datetime | None = None
    id: int | None = None


class AuditLog(ABC):
    """Append-only; entries are never updated or removed"""

    @abstractmethod
    def append(self, record: AuditRecord) -> AuditRecord:
        raise NotImplementedError

    @abstractmethod
    def query(
        self,
        *,
        vendor_id: UUID | None = None,
        action: str | None = None,
        actor: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int = 100,
    ) -> List[AuditRecord]:
        """Newest first"""
        raise NotImplementedError
