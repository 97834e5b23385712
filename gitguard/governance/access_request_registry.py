"""Access request registry: creation rules, lookups, listing and passive expiry. No FastAPI."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from gitguard.application.notifications import AccessNotifier
from gitguard.core.timeutil import as_utc
from gitguard.domain.exceptions import ConflictError, NotFoundError, ValidationError
from gitguard.domain.models import AccessRequest
from gitguard.domain.validators import (
    normalize_actions,
    normalize_approver_ids,
    validate_access_target,
    validate_reason,
)
from gitguard.governance.audit_logger import AuditLogger
from gitguard.governance.audit_models import (
    SYSTEM_ACTOR,
    AuditAction,
    ClientContext,
    EntityType,
)
from gitguard.governance.pagination import Page
from gitguard.governance.repositories import (
    AccessRequestQuery,
    AccessRequestRepository,
    DirectoryRepository,
)
from gitguard.security.exceptions import AuthorizationError


class AccessRequestRegistry:
    """
    Entity store front for access requests.
    Enforces the creation contract (exactly one of role / non-empty actions) and
    at most one PENDING request per (requester, repository).
    """

    def __init__(
        self,
        requests: AccessRequestRepository,
        directory: DirectoryRepository,
        audit_logger: AuditLogger,
        notifier: AccessNotifier,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._requests = requests
        self._directory = directory
        self._audit = audit_logger
        self._notifier = notifier
        self._logger = logger or logging.getLogger(__name__)

    async def create(
        self,
        *,
        requester_id: str,
        repository_id: str,
        reason: str,
        role_id: Optional[str] = None,
        actions: Optional[Iterable[str]] = None,
        approver_ids: Optional[Iterable[str]] = None,
        requires_multi_approval: bool = False,
        expires_at: Optional[datetime] = None,
        client: Optional[ClientContext] = None,
    ) -> AccessRequest:
        """Create a PENDING request. Nothing is persisted unless every check passes."""
        if await self._directory.get_user(requester_id) is None:
            raise NotFoundError("User not found")
        repository = await self._directory.get_repository(repository_id)
        if repository is None:
            raise NotFoundError("Repository not found")
        if role_id:
            role = await self._directory.get_role(role_id)
            if role is None:
                raise NotFoundError("Role not found")
            if role.organization_id != repository.organization_id:
                raise ValidationError("Role does not belong to the repository's organization")

        requested_actions = normalize_actions(actions)
        validate_access_target(role_id, requested_actions)
        cleaned_reason = validate_reason(reason)
        now = datetime.now(timezone.utc)
        expires_at = as_utc(expires_at)
        if expires_at is not None and expires_at <= now:
            raise ValidationError("expiresAt must be in the future")

        if await self._requests.find_pending(requester_id, repository_id) is not None:
            raise ConflictError("You already have a pending access request for this repository")

        request = AccessRequest(
            id=str(uuid.uuid4()),
            requester_id=requester_id,
            repository_id=repository_id,
            reason=cleaned_reason,
            created_at=now,
            role_id=role_id or None,
            requested_actions=requested_actions,
            approver_ids=tuple(
                a for a in normalize_approver_ids(approver_ids) if a != repository.owner_id
            ),
            requires_multi_approval=requires_multi_approval,
            expires_at=expires_at,
            updated_at=now,
        )
        # The repository re-checks the pending uniqueness atomically.
        await self._requests.add(request)
        self._logger.info(
            "access_request_created",
            extra={
                "request_id": request.id,
                "requester_id": requester_id,
                "repository_id": repository_id,
                "requires_multi_approval": requires_multi_approval,
            },
        )

        await self._audit.append(
            action=AuditAction.ACCESS_REQUEST_CREATED,
            entity_type=EntityType.ACCESS_REQUEST,
            entity_id=request.id,
            actor_id=requester_id,
            description=f'Access request created for repository "{repository.name}"',
            metadata={
                "repository_id": repository_id,
                "role_id": request.role_id,
                "requested_actions": list(request.requested_actions),
                "approver_ids": list(request.approver_ids),
                "requires_multi_approval": requires_multi_approval,
            },
            client=client,
        )

        requester = await self._directory.get_user(requester_id)
        await self._notifier.approval_requested(request, repository, requester, repository.owner_id)
        for approver_id in request.approver_ids:
            if approver_id != repository.owner_id:
                await self._notifier.approval_requested(request, repository, requester, approver_id)
        return request

    async def get(self, request_id: str) -> AccessRequest:
        request = await self._requests.get(request_id)
        if request is None:
            raise NotFoundError("Access request not found")
        return request

    async def get_for_viewer(self, request_id: str, viewer_id: str) -> AccessRequest:
        """Visible to the requester, the deciding approver, designated approvers and the repository owner."""
        request = await self.get(request_id)
        repository = await self._directory.get_repository(request.repository_id)
        owner_id = repository.owner_id if repository else ""
        if not request.is_visible_to(viewer_id, owner_id):
            raise AuthorizationError("You do not have permission to view this access request")
        return request

    async def list(self, query: AccessRequestQuery) -> Page[AccessRequest]:
        owned: List[str] = []
        if query.caller_role == "approver" and query.caller_id:
            owned = await self._directory.repository_ids_owned_by(query.caller_id)
        items, total = await self._requests.list(query, owned)
        return Page(items=items, total=total, page=query.page, limit=query.limit)

    async def expire_overdue(self, now: Optional[datetime] = None) -> List[AccessRequest]:
        """
        Scheduler hook: move overdue PENDING requests to EXPIRED.
        Requests decided concurrently are skipped; each expiry is its own atomic unit.
        """
        now = as_utc(now) or datetime.now(timezone.utc)
        expired: List[AccessRequest] = []
        for candidate in await self._requests.list_overdue(now):
            try:
                updated = await self._requests.transition(
                    candidate.id, lambda current: current.expire(now)
                )
            except (ConflictError, NotFoundError) as e:
                self._logger.info(
                    "access_request_expiry_skipped",
                    extra={"request_id": candidate.id, "error": str(e)},
                )
                continue
            expired.append(updated)
            await self._audit.append(
                action=AuditAction.ACCESS_REQUEST_EXPIRED,
                entity_type=EntityType.ACCESS_REQUEST,
                entity_id=updated.id,
                actor_id=SYSTEM_ACTOR,
                description="Access request expired before a decision was made",
                metadata={
                    "expires_at": updated.expires_at.isoformat() if updated.expires_at else None,
                    "approval_count": updated.approval_count,
                },
            )
        if expired:
            self._logger.info("access_requests_expired", extra={"count": len(expired)})
        return expired