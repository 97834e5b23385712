"""Domain model for access requests. Pure business semantics. No ORM or infrastructure."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from gitguard.domain.exceptions import ConflictError, InvalidStatusTransitionError


class AccessRequestStatus(str, Enum):
    """Lifecycle status of an access request. PENDING is the only non-terminal state."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


# Allowed status transitions: from_status -> set of valid next statuses
_STATUS_TRANSITIONS: Dict[AccessRequestStatus, FrozenSet[AccessRequestStatus]] = {
    AccessRequestStatus.PENDING: frozenset(
        {
            AccessRequestStatus.APPROVED,
            AccessRequestStatus.REJECTED,
            AccessRequestStatus.EXPIRED,
        }
    ),
    AccessRequestStatus.APPROVED: frozenset(),
    AccessRequestStatus.REJECTED: frozenset(),
    AccessRequestStatus.EXPIRED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[AccessRequestStatus] = frozenset(
    s for s, allowed in _STATUS_TRANSITIONS.items() if not allowed
)


def validate_transition(current: AccessRequestStatus, new: AccessRequestStatus) -> None:
    """Raises InvalidStatusTransitionError if current -> new is not allowed."""
    allowed = _STATUS_TRANSITIONS.get(current, frozenset())
    if new not in allowed:
        raise InvalidStatusTransitionError(
            f"Invalid status transition from {current.value} to {new.value}"
        )


@dataclass(frozen=True)
class AccessRequest:
    """
    Request by a user for a role (or a set of actions) on one repository.
    Immutable value; every state change produces a new instance via the transition helpers.
    """

    id: str
    requester_id: str
    repository_id: str
    reason: str
    created_at: datetime
    role_id: Optional[str] = None
    requested_actions: Tuple[str, ...] = ()
    status: AccessRequestStatus = AccessRequestStatus.PENDING
    approver_ids: Tuple[str, ...] = ()
    requires_multi_approval: bool = False
    approval_count: int = 0
    approved_by: Tuple[str, ...] = ()
    approver_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def required_approvals(self) -> int:
        """Quorum size: every designated approver plus the repository owner."""
        return len(self.approver_ids) + 1

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def quorum_reached(self) -> bool:
        return self.approval_count == self.required_approvals

    def ensure_pending(self) -> None:
        """Raises ConflictError unless the request is still PENDING."""
        if self.status != AccessRequestStatus.PENDING:
            raise ConflictError(
                f"Access request {self.id} has already been processed (status={self.status.value})"
            )

    def is_decider(self, actor_id: str, owner_id: str) -> bool:
        """Owner of the target repository or a designated approver."""
        return actor_id == owner_id or actor_id in self.approver_ids

    def is_visible_to(self, viewer_id: str, owner_id: str) -> bool:
        return (
            viewer_id == self.requester_id
            or viewer_id == self.approver_id
            or self.is_decider(viewer_id, owner_id)
        )

    def is_overdue(self, now: datetime) -> bool:
        return (
            self.status == AccessRequestStatus.PENDING
            and self.expires_at is not None
            and self.expires_at <= now
        )

    # --- transitions -----------------------------------------------------

    def record_approval(self, actor_id: str, now: datetime) -> "AccessRequest":
        """Count one more approval toward quorum. Never exceeds required_approvals."""
        self.ensure_pending()
        if actor_id in self.approved_by:
            raise ConflictError(
                f"Approver {actor_id} has already approved access request {self.id}"
            )
        if self.approval_count >= self.required_approvals:
            raise ConflictError(f"Access request {self.id} has already reached quorum")
        return replace(
            self,
            approval_count=self.approval_count + 1,
            approved_by=self.approved_by + (actor_id,),
            updated_at=now,
        )

    def approve(self, approver_id: str, now: datetime) -> "AccessRequest":
        validate_transition(self.status, AccessRequestStatus.APPROVED)
        return replace(
            self,
            status=AccessRequestStatus.APPROVED,
            approver_id=approver_id,
            approved_at=now,
            updated_at=now,
        )

    def reject(self, rejector_id: str, now: datetime, reason: Optional[str] = None) -> "AccessRequest":
        validate_transition(self.status, AccessRequestStatus.REJECTED)
        return replace(
            self,
            status=AccessRequestStatus.REJECTED,
            approver_id=rejector_id,
            rejected_at=now,
            rejection_reason=reason,
            updated_at=now,
        )

    def expire(self, now: datetime) -> "AccessRequest":
        validate_transition(self.status, AccessRequestStatus.EXPIRED)
        return replace(
            self,
            status=AccessRequestStatus.EXPIRED,
            expired_at=now,
            updated_at=now,
        )
