"""Append-only audit trail. Writes never fail the caller; reads are paginated and filterable."""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from gitguard.domain.exceptions import NotFoundError
from gitguard.governance.audit_models import AuditLogEntry, AuditLogQuery, ClientContext
from gitguard.governance.audit_repository import AuditRepository
from gitguard.core.outcomes import SideEffectOutcome
from gitguard.governance.pagination import Page
from gitguard.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


class AuditLogger:
    """
    Writes immutable audit records via repository.
    Must include: who, what, when (UTC), on which entity, from which client.
    Persistence failures are logged locally and returned as a failed outcome; they never propagate.
    """

    def __init__(
        self,
        repository: AuditRepository,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._repository = repository
        self._metrics = metrics
        self._last_timestamp: Optional[datetime] = None

    def _next_timestamp(self) -> datetime:
        # Strictly increasing even when the wall clock stalls or steps back.
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + _TICK
        self._last_timestamp = now
        return now

    async def append(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str,
        actor_id: str,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
        client: Optional[ClientContext] = None,
    ) -> SideEffectOutcome:
        """Write immutable audit record. Timestamp is UTC."""
        entry = AuditLogEntry(
            id=str(uuid.uuid4()),
            action=str(getattr(action, "value", action)),
            entity_type=str(getattr(entity_type, "value", entity_type)),
            entity_id=entity_id,
            actor_id=actor_id,
            description=description,
            created_at=self._next_timestamp(),
            metadata=metadata,
            client=client,
        )
        try:
            await self._repository.append(entry)
        except Exception as e:
            logger.error(
                "audit_write_failed",
                extra={
                    "action": entry.action,
                    "entity_type": entry.entity_type,
                    "entity_id": entry.entity_id,
                    "actor_id": actor_id,
                    "error": str(e),
                },
            )
            if self._metrics:
                self._metrics.increment("audit_write_failed", category=entry.action)
            return SideEffectOutcome.failed("audit", e)
        return SideEffectOutcome.ok("audit")

    async def get(self, entry_id: str) -> AuditLogEntry:
        entry = await self._repository.get(entry_id)
        if entry is None:
            raise NotFoundError("Audit log not found")
        return entry

    async def query(self, query: AuditLogQuery) -> Page[AuditLogEntry]:
        items, total = await self._repository.query(query)
        return Page(items=items, total=total, page=query.page, limit=query.limit)

    async def list_actions(self) -> List[str]:
        """Distinct action vocabulary, sorted, for filter UIs."""
        return sorted(await self._repository.distinct_actions())

    async def list_entity_types(self) -> List[str]:
        return sorted(await self._repository.distinct_entity_types())
