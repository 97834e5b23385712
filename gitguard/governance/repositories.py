"""Storage protocols for the access governance core. Infrastructure implements them."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Collection, List, Optional, Protocol, Tuple

from gitguard.domain.exceptions import ValidationError
from gitguard.domain.models import (
    AccessRequest,
    AccessRequestStatus,
    Repository,
    Role,
    RoleAssignment,
    User,
)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

_TYPE_TO_STATUS = {
    "pending": AccessRequestStatus.PENDING,
    "approved": AccessRequestStatus.APPROVED,
    "rejected": AccessRequestStatus.REJECTED,
    "all": None,
}

Transition = Callable[[AccessRequest], AccessRequest]


@dataclass(frozen=True)
class AccessRequestQuery:
    """
    List filters. `request_type` (pending/approved/rejected/all) overrides `status` unless it is "all".
    `caller_role` narrows to requests the caller made ("requester") or may decide ("approver").
    """

    caller_id: Optional[str] = None
    status: Optional[AccessRequestStatus] = None
    request_type: Optional[str] = None
    caller_role: Optional[str] = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.request_type is not None and self.request_type not in _TYPE_TO_STATUS:
            raise ValidationError(f"Unknown request type: {self.request_type}")
        if self.caller_role not in (None, "requester", "approver"):
            raise ValidationError(f"Unknown caller role: {self.caller_role}")
        if self.caller_role is not None and not self.caller_id:
            raise ValidationError("caller_id is required when filtering by caller role")
        if self.page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def effective_status(self) -> Optional[AccessRequestStatus]:
        if self.request_type is not None and self.request_type != "all":
            return _TYPE_TO_STATUS[self.request_type]
        return self.status

    def matches(self, request: AccessRequest, owned_repository_ids: Collection[str] = ()) -> bool:
        status = self.effective_status
        if status is not None and request.status != status:
            return False
        if self.caller_role == "requester":
            return request.requester_id == self.caller_id
        if self.caller_role == "approver":
            # Owners are implicit approvers of pending requests on their repositories.
            return (
                request.approver_id == self.caller_id
                or self.caller_id in request.approver_ids
                or (
                    request.status == AccessRequestStatus.PENDING
                    and request.repository_id in owned_repository_ids
                )
            )
        return True


class AccessRequestRepository(Protocol):
    async def add(self, request: AccessRequest) -> None:
        """Persist a new PENDING request. Raises ConflictError if (requester, repository) already has one."""
        ...

    async def get(self, request_id: str) -> Optional[AccessRequest]:
        ...

    async def find_pending(self, requester_id: str, repository_id: str) -> Optional[AccessRequest]:
        ...

    async def list(
        self,
        query: AccessRequestQuery,
        owned_repository_ids: Collection[str] = (),
    ) -> Tuple[List[AccessRequest], int]:
        """Matching requests newest first, sliced to the query page, plus the unpaged total."""
        ...

    async def list_overdue(self, now: datetime) -> List[AccessRequest]:
        """PENDING requests whose expires_at is at or before now."""
        ...

    async def transition(self, request_id: str, fn: Transition) -> AccessRequest:
        """
        Read-modify-write one request as a single atomic unit.
        fn receives the current state and returns the new one, or raises to abort with nothing written.
        Concurrent calls on the same request serialize; other requests are unaffected.
        Raises NotFoundError if the request does not exist.
        """
        ...


class DirectoryRepository(Protocol):
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    async def save_user(self, user: User) -> None:
        ...

    async def get_repository(self, repository_id: str) -> Optional[Repository]:
        ...

    async def get_role(self, role_id: str) -> Optional[Role]:
        ...

    async def repository_ids_owned_by(self, user_id: str) -> List[str]:
        ...


class RoleAssignmentRepository(Protocol):
    async def add(self, assignment: RoleAssignment) -> None:
        ...

    async def list_for(self, user_id: str, repository_id: str) -> List[RoleAssignment]:
        ...
