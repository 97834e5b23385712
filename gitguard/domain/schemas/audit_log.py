"""Pydantic schemas for audit trail reads."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from gitguard.domain.schemas.access_request import Pagination
from gitguard.governance.audit_models import AuditLogEntry


class AuditLogResponse(BaseModel):
    id: str
    action: str
    entity_type: str
    entity_id: str
    actor_id: str
    description: str
    metadata: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, entry: AuditLogEntry) -> "AuditLogResponse":
        client = entry.client
        return cls(
            id=entry.id,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            actor_id=entry.actor_id,
            description=entry.description,
            metadata=entry.metadata,
            ip_address=client.ip_address if client else None,
            user_agent=client.user_agent if client else None,
            created_at=entry.created_at,
        )


class AuditLogPage(BaseModel):
    audit_logs: List[AuditLogResponse]
    pagination: Pagination
