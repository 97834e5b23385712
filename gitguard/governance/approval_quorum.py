"""Approve/reject with multi-approver quorum. Human-in-the-loop; biometric proof required to approve."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from gitguard.application.notifications import AccessNotifier
from gitguard.domain.exceptions import NotFoundError
from gitguard.domain.models import AccessRequest, Repository
from gitguard.governance.access_request_registry import AccessRequestRegistry
from gitguard.governance.audit_logger import AuditLogger
from gitguard.governance.audit_models import AuditAction, ClientContext, EntityType
from gitguard.governance.repositories import AccessRequestRepository, DirectoryRepository
from gitguard.governance.role_assignment_manager import RoleAssignmentManager
from gitguard.observability.metrics import MetricsCollector
from gitguard.application.biometric_verifier import BiometricVerifier
from gitguard.security.exceptions import AuthorizationError, VerificationError


@dataclass(frozen=True)
class ApprovalResult:
    request: AccessRequest
    approval_count: int
    required_approvals: int
    finalized: bool

    @property
    def message(self) -> str:
        if not self.finalized:
            return f"Approval recorded ({self.approval_count} of {self.required_approvals})"
        if self.request.requires_multi_approval:
            return "Access request fully approved"
        return "Access request approved successfully"


class ApprovalQuorumCoordinator:
    """
    Decides access requests.
    Single-approval requests finalize on the first authorized approval. Multi-approval
    requests need len(approver_ids) + 1 distinct approvals (the owner counts); the
    increment-and-compare runs as one atomic unit per request, so exactly one caller
    observes quorum and triggers finalize. A single authorized rejection is final.
    """

    def __init__(
        self,
        registry: AccessRequestRegistry,
        requests: AccessRequestRepository,
        directory: DirectoryRepository,
        finalizer: RoleAssignmentManager,
        verifier: BiometricVerifier,
        audit_logger: AuditLogger,
        notifier: AccessNotifier,
        metrics: Optional[MetricsCollector] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._registry = registry
        self._requests = requests
        self._directory = directory
        self._finalizer = finalizer
        self._verifier = verifier
        self._audit = audit_logger
        self._notifier = notifier
        self._metrics = metrics
        self._logger = logger or logging.getLogger(__name__)

    async def _load_for_decision(
        self,
        request_id: str,
        actor_id: str,
        verb: str,
    ) -> tuple[AccessRequest, Repository]:
        """NotFound, then Conflict (not pending), then Authorization (not owner/approver)."""
        request = await self._registry.get(request_id)
        request.ensure_pending()
        repository = await self._directory.get_repository(request.repository_id)
        if repository is None:
            raise NotFoundError("Repository not found")
        if not request.is_decider(actor_id, repository.owner_id):
            raise AuthorizationError(f"You are not authorized to {verb} this request")
        return request, repository

    async def _verify_biometric(self, request_id: str, actor_id: str, token: str) -> None:
        try:
            valid = await self._verifier.verify(request_id, actor_id, token)
        except Exception as e:
            self._logger.warning(
                "biometric_verifier_error",
                extra={"request_id": request_id, "actor_id": actor_id, "error": str(e)},
            )
            valid = False
        # Only an explicit True counts; anything ambiguous is a rejection.
        if valid is not True:
            raise VerificationError("Biometric verification failed")

    async def approve(
        self,
        request_id: str,
        actor_id: str,
        biometric_token: str,
        client: Optional[ClientContext] = None,
    ) -> ApprovalResult:
        request, repository = await self._load_for_decision(request_id, actor_id, "approve")
        await self._verify_biometric(request_id, actor_id, biometric_token)

        if not request.requires_multi_approval:
            approved = await self._finalizer.finalize(request, actor_id, client=client)
            return ApprovalResult(
                request=approved,
                approval_count=approved.approval_count,
                required_approvals=1,
                finalized=True,
            )

        now = datetime.now(timezone.utc)

        def step(current: AccessRequest) -> AccessRequest:
            counted = current.record_approval(actor_id, now)
            # The approval that reaches quorum commits APPROVED in the same unit.
            return counted.approve(actor_id, now) if counted.quorum_reached else counted

        updated = await self._requests.transition(request_id, step)
        if self._metrics:
            self._metrics.increment("approval_step_recorded")
        await self._audit.append(
            action=AuditAction.ACCESS_REQUEST_APPROVAL_STEP,
            entity_type=EntityType.ACCESS_REQUEST,
            entity_id=updated.id,
            actor_id=actor_id,
            description=(
                f"Access request approved by {actor_id} "
                f"(Step {updated.approval_count} of {updated.required_approvals})"
            ),
            metadata={
                "approval_count": updated.approval_count,
                "required_approvals": updated.required_approvals,
            },
            client=client,
        )

        if not updated.quorum_reached:
            return ApprovalResult(
                request=updated,
                approval_count=updated.approval_count,
                required_approvals=updated.required_approvals,
                finalized=False,
            )

        approved = await self._finalizer.apply_approval(updated, actor_id, client=client)
        return ApprovalResult(
            request=approved,
            approval_count=approved.approval_count,
            required_approvals=approved.required_approvals,
            finalized=True,
        )

    async def reject(
        self,
        request_id: str,
        actor_id: str,
        reason: Optional[str] = None,
        client: Optional[ClientContext] = None,
    ) -> AccessRequest:
        """Bypasses quorum: one authorized rejection is enough, even under multi-approval."""
        request, repository = await self._load_for_decision(request_id, actor_id, "reject")
        now = datetime.now(timezone.utc)
        rejected = await self._requests.transition(
            request.id, lambda current: current.reject(actor_id, now, reason)
        )
        self._logger.info(
            "access_request_rejected",
            extra={"request_id": rejected.id, "actor_id": actor_id},
        )
        await self._audit.append(
            action=AuditAction.ACCESS_REQUEST_REJECTED,
            entity_type=EntityType.ACCESS_REQUEST,
            entity_id=rejected.id,
            actor_id=actor_id,
            description=f'Access request for "{repository.name}" rejected',
            metadata={
                "rejection_reason": reason,
                "approval_count": rejected.approval_count,
            },
            client=client,
        )
        rejector = await self._directory.get_user(actor_id)
        await self._notifier.access_rejected(rejected, repository, rejector)
        return rejected
