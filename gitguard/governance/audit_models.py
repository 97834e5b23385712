"""Immutable audit records and read queries. Domain-level immutability."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from gitguard.core.timeutil import as_utc
from gitguard.domain.exceptions import ValidationError

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class AuditAction(str, Enum):
    ACCESS_REQUEST_CREATED = "ACCESS_REQUEST_CREATED"
    ACCESS_REQUEST_APPROVAL_STEP = "ACCESS_REQUEST_APPROVAL_STEP"
    ACCESS_REQUEST_APPROVED = "ACCESS_REQUEST_APPROVED"
    ACCESS_REQUEST_REJECTED = "ACCESS_REQUEST_REJECTED"
    ACCESS_REQUEST_EXPIRED = "ACCESS_REQUEST_EXPIRED"
    BIOMETRIC_SETUP = "BIOMETRIC_SETUP"
    BIOMETRIC_VERIFICATION = "BIOMETRIC_VERIFICATION"
    BIOMETRIC_DISABLED = "BIOMETRIC_DISABLED"
    ERROR = "ERROR"


class EntityType(str, Enum):
    ACCESS_REQUEST = "access_request"
    USER = "user"
    SYSTEM = "system"


SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class ClientContext:
    """Network/client details of the caller that triggered the action."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class AuditLogEntry:
    """
    Immutable audit record: who (actor_id), what (action on entity), when (UTC), how (client).
    """

    id: str
    action: str
    entity_type: str
    entity_id: str
    actor_id: str
    description: str
    created_at: datetime
    metadata: Optional[Dict[str, Any]] = None
    client: Optional[ClientContext] = None

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for JSON logging."""
        return {
            "id": self.id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "description": self.description,
            "metadata": self.metadata,
            "ip_address": self.client.ip_address if self.client else None,
            "user_agent": self.client.user_agent if self.client else None,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AuditLogQuery:
    """Filters for range reads. Date bounds are inclusive."""

    actor_id: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    action: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_date", as_utc(self.from_date))
        object.__setattr__(self, "to_date", as_utc(self.to_date))
        if self.page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValidationError("fromDate must not be after toDate")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def matches(self, entry: AuditLogEntry) -> bool:
        if self.actor_id is not None and entry.actor_id != self.actor_id:
            return False
        if self.entity_type is not None and entry.entity_type != self.entity_type:
            return False
        if self.entity_id is not None and entry.entity_id != self.entity_id:
            return False
        if self.action is not None and entry.action != self.action:
            return False
        if self.from_date is not None and entry.created_at < self.from_date:
            return False
        if self.to_date is not None and entry.created_at > self.to_date:
            return False
        return True

