"""In-process store. Per-request asyncio locks make each transition an atomic unit within one event loop."""

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Collection, Dict, List, Optional, Tuple

from gitguard.domain.exceptions import ConflictError, NotFoundError
from gitguard.domain.models import (
    TERMINAL_STATUSES,
    AccessRequest,
    AccessRequestStatus,
    Organization,
    Repository,
    Role,
    RoleAssignment,
    User,
)
from gitguard.governance.audit_models import AuditLogEntry, AuditLogQuery
from gitguard.governance.repositories import AccessRequestQuery, Transition


class InMemoryAccessRequestRepository:
    """Implements AccessRequestRepository. One lock per request id; no lock shared across requests."""

    def __init__(self) -> None:
        self._items: Dict[str, AccessRequest] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def add(self, request: AccessRequest) -> None:
        # No await between the check and the insert, so this is atomic on the event loop.
        if self._find_pending(request.requester_id, request.repository_id) is not None:
            raise ConflictError("You already have a pending access request for this repository")
        self._items[request.id] = request

    def _find_pending(self, requester_id: str, repository_id: str) -> Optional[AccessRequest]:
        for item in self._items.values():
            if (
                item.requester_id == requester_id
                and item.repository_id == repository_id
                and item.status == AccessRequestStatus.PENDING
            ):
                return item
        return None

    async def get(self, request_id: str) -> Optional[AccessRequest]:
        return self._items.get(request_id)

    async def find_pending(self, requester_id: str, repository_id: str) -> Optional[AccessRequest]:
        return self._find_pending(requester_id, repository_id)

    async def list(
        self,
        query: AccessRequestQuery,
        owned_repository_ids: Collection[str] = (),
    ) -> Tuple[List[AccessRequest], int]:
        owned = set(owned_repository_ids)
        # Newest first; insertion order breaks created_at ties.
        matching = [
            r
            for _, r in sorted(
                enumerate(self._items.values()),
                key=lambda pair: (pair[1].created_at, pair[0]),
                reverse=True,
            )
            if query.matches(r, owned)
        ]
        return matching[query.offset : query.offset + query.limit], len(matching)

    async def list_overdue(self, now: datetime) -> List[AccessRequest]:
        return [r for r in self._items.values() if r.is_overdue(now)]

    async def transition(self, request_id: str, fn: Transition) -> AccessRequest:
        try:
            async with self._locks[request_id]:
                current = self._items.get(request_id)
                if current is None:
                    raise NotFoundError("Access request not found")
                updated = fn(current)
                self._items[request_id] = updated
                return updated
        finally:
            # Terminal requests accept no further transitions, so their lock is released for good.
            settled = self._items.get(request_id)
            if settled is None or settled.status in TERMINAL_STATUSES:
                self._locks.pop(request_id, None)


class InMemoryDirectoryRepository:
    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._organizations: Dict[str, Organization] = {}
        self._repositories: Dict[str, Repository] = {}
        self._roles: Dict[str, Role] = {}

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    async def save_user(self, user: User) -> None:
        self._users[user.id] = user

    async def save_organization(self, organization: Organization) -> None:
        self._organizations[organization.id] = organization

    async def get_repository(self, repository_id: str) -> Optional[Repository]:
        return self._repositories.get(repository_id)

    async def save_repository(self, repository: Repository) -> None:
        self._repositories[repository.id] = repository

    async def get_role(self, role_id: str) -> Optional[Role]:
        return self._roles.get(role_id)

    async def save_role(self, role: Role) -> None:
        self._roles[role.id] = role

    async def repository_ids_owned_by(self, user_id: str) -> List[str]:
        return [r.id for r in self._repositories.values() if r.owner_id == user_id]


class InMemoryRoleAssignmentRepository:
    def __init__(self) -> None:
        self._items: Dict[str, RoleAssignment] = {}

    async def add(self, assignment: RoleAssignment) -> None:
        self._items[assignment.id] = assignment

    async def list_for(self, user_id: str, repository_id: str) -> List[RoleAssignment]:
        return [
            a
            for a in self._items.values()
            if a.user_id == user_id and a.repository_id == repository_id
        ]

    def all(self) -> List[RoleAssignment]:
        return list(self._items.values())


class InMemoryAuditRepository:
    """Append-only list. Entries are kept in insertion (time) order."""

    def __init__(self) -> None:
        self._entries: List[AuditLogEntry] = []

    async def append(self, entry: AuditLogEntry) -> None:
        self._entries.append(entry)

    async def get(self, entry_id: str) -> Optional[AuditLogEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    async def query(self, query: AuditLogQuery) -> Tuple[List[AuditLogEntry], int]:
        matching = [e for e in reversed(self._entries) if query.matches(e)]
        return matching[query.offset : query.offset + query.limit], len(matching)

    async def distinct_actions(self) -> List[str]:
        return sorted({e.action for e in self._entries})

    async def distinct_entity_types(self) -> List[str]:
        return sorted({e.entity_type for e in self._entries})

    def entries(self) -> List[AuditLogEntry]:
        return list(self._entries)
