"""Domain models. Pure business entities."""

from gitguard.domain.models.access_request import (
    TERMINAL_STATUSES,
    AccessRequest,
    AccessRequestStatus,
    validate_transition,
)
from gitguard.domain.models.directory import (
    Organization,
    Repository,
    Role,
    RoleAssignment,
    User,
)

__all__ = [
    "AccessRequest",
    "AccessRequestStatus",
    "Organization",
    "Repository",
    "Role",
    "RoleAssignment",
    "TERMINAL_STATUSES",
    "User",
    "validate_transition",
]
