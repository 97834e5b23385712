"""Finalization of approved requests: status, grant, oracle sync. Local-first, sync-eventually."""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from gitguard.application.authorization_oracle import REPOSITORY_RESOURCE, AuthorizationOracle
from gitguard.application.notifications import AccessNotifier
from gitguard.core.outcomes import SideEffectOutcome
from gitguard.domain.models import AccessRequest, Role, RoleAssignment
from gitguard.governance.audit_logger import AuditLogger
from gitguard.governance.audit_models import AuditAction, ClientContext, EntityType
from gitguard.governance.repositories import (
    AccessRequestRepository,
    DirectoryRepository,
    RoleAssignmentRepository,
)
from gitguard.observability.metrics import MetricsCollector


class RoleAssignmentManager:
    """
    Issues time-bounded grants for approved requests and pushes them to the oracle.
    The PENDING -> APPROVED transition and the RoleAssignment are committed first;
    oracle failures are logged and recorded, never rolled back. There is no retry.
    """

    def __init__(
        self,
        requests: AccessRequestRepository,
        assignments: RoleAssignmentRepository,
        directory: DirectoryRepository,
        oracle: AuthorizationOracle,
        audit_logger: AuditLogger,
        notifier: AccessNotifier,
        metrics: Optional[MetricsCollector] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._requests = requests
        self._assignments = assignments
        self._directory = directory
        self._oracle = oracle
        self._audit = audit_logger
        self._notifier = notifier
        self._metrics = metrics
        self._logger = logger or logging.getLogger(__name__)

    async def finalize(
        self,
        request: AccessRequest,
        approver_id: str,
        client: Optional[ClientContext] = None,
    ) -> AccessRequest:
        """
        Mark the request APPROVED with approver_id as the single finalizing approver.
        Raises ConflictError if the request left PENDING in the meantime.
        """
        now = datetime.now(timezone.utc)
        approved = await self._requests.transition(
            request.id, lambda current: current.approve(approver_id, now)
        )
        return await self.apply_approval(approved, approver_id, client=client)

    async def apply_approval(
        self,
        approved: AccessRequest,
        approver_id: str,
        client: Optional[ClientContext] = None,
    ) -> AccessRequest:
        """
        Grant, oracle sync, audit and notification for a request whose APPROVED
        status is already committed. Runs once per approved request.
        """
        now = approved.approved_at or datetime.now(timezone.utc)

        assignment: Optional[RoleAssignment] = None
        oracle_outcome = SideEffectOutcome.skipped("oracle_sync")
        if approved.role_id:
            assignment = RoleAssignment(
                id=str(uuid.uuid4()),
                user_id=approved.requester_id,
                role_id=approved.role_id,
                repository_id=approved.repository_id,
                created_at=now,
                expires_at=approved.expires_at,
            )
            await self._assignments.add(assignment)
            role = await self._directory.get_role(approved.role_id)
            oracle_outcome = await self._sync_to_oracle(approved, role)

        if self._metrics:
            self._metrics.increment("access_request_finalized")
        self._logger.info(
            "access_request_finalized",
            extra={
                "request_id": approved.id,
                "approver_id": approver_id,
                "role_assignment_id": assignment.id if assignment else None,
                "oracle_synced": oracle_outcome.succeeded,
            },
        )

        repository = await self._directory.get_repository(approved.repository_id)
        repository_name = repository.name if repository else approved.repository_id
        await self._audit.append(
            action=AuditAction.ACCESS_REQUEST_APPROVED,
            entity_type=EntityType.ACCESS_REQUEST,
            entity_id=approved.id,
            actor_id=approver_id,
            description=f'Access request for "{repository_name}" approved',
            metadata={
                "requester_id": approved.requester_id,
                "repository_id": approved.repository_id,
                "role_id": approved.role_id,
                "expires_at": approved.expires_at.isoformat() if approved.expires_at else None,
                "role_assignment_id": assignment.id if assignment else None,
                "approval_count": approved.approval_count,
                "oracle_sync": oracle_outcome.to_dict(),
            },
            client=client,
        )

        if repository is not None:
            approver = await self._directory.get_user(approver_id)
            await self._notifier.access_approved(approved, repository, approver)
        return approved

    async def _sync_to_oracle(
        self,
        request: AccessRequest,
        role: Optional[Role],
    ) -> SideEffectOutcome:
        role_key = role.key if role else request.role_id
        user = await self._directory.get_user(request.requester_id)
        if user is not None:
            try:
                await self._oracle.sync_principal(user.id, user.profile_attributes())
            except Exception as e:
                # The bind below may still succeed if the principal already exists remotely.
                self._logger.warning(
                    "oracle_principal_sync_failed",
                    extra={"user_id": user.id, "error": str(e)},
                )
        try:
            await self._oracle.bind_role(
                request.requester_id,
                role_key,
                REPOSITORY_RESOURCE,
                request.repository_id,
            )
        except Exception as e:
            self._logger.error(
                "oracle_sync_failed",
                extra={
                    "request_id": request.id,
                    "user_id": request.requester_id,
                    "role_key": role_key,
                    "repository_id": request.repository_id,
                    "error": str(e),
                },
            )
            if self._metrics:
                self._metrics.increment("oracle_sync_failed")
            return SideEffectOutcome.failed("oracle_sync", e)
        return SideEffectOutcome.ok("oracle_sync")

    async def active_assignments(
        self,
        user_id: str,
        repository_id: str,
        now: Optional[datetime] = None,
    ) -> List[RoleAssignment]:
        """Grants for user on repository whose expiry has not elapsed."""
        now = now or datetime.now(timezone.utc)
        assignments = await self._assignments.list_for(user_id, repository_id)
        return [a for a in assignments if a.is_active(now)]
