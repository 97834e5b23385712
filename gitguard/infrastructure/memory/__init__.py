"""In-process implementations of the storage protocols."""

from gitguard.infrastructure.memory.store import (
    InMemoryAccessRequestRepository,
    InMemoryAuditRepository,
    InMemoryDirectoryRepository,
    InMemoryRoleAssignmentRepository,
)

__all__ = [
    "InMemoryAccessRequestRepository",
    "InMemoryAuditRepository",
    "InMemoryDirectoryRepository",
    "InMemoryRoleAssignmentRepository",
]
