"""Audit repository protocol. Governance layer depends on this; infrastructure implements it."""

from typing import List, Optional, Protocol, Tuple

from gitguard.governance.audit_models import AuditLogEntry, AuditLogQuery


class AuditRepository(Protocol):
    """Protocol for persisting and reading immutable audit records. No update or delete."""

    async def append(self, entry: AuditLogEntry) -> None:
        """Persist an immutable audit record."""
        ...

    async def get(self, entry_id: str) -> Optional[AuditLogEntry]:
        ...

    async def query(self, query: AuditLogQuery) -> Tuple[List[AuditLogEntry], int]:
        """Matching entries newest first, sliced to the query page, plus the unpaged total."""
        ...

    async def distinct_actions(self) -> List[str]:
        ...

    async def distinct_entity_types(self) -> List[str]:
        ...
