"""Notification port and the access-request messages sent through it. Dispatch is fire-and-forget."""

import logging
from typing import Any, Dict, Optional, Protocol

from gitguard.domain.models import AccessRequest, Repository, User
from gitguard.core.outcomes import SideEffectOutcome
from gitguard.observability.metrics import MetricsCollector

DEEP_LINK_SCHEME = "gitguard://"


class NotificationDispatcher(Protocol):
    async def notify(
        self,
        user_id: str,
        title: str,
        body: str,
        metadata: Dict[str, Any],
    ) -> None:
        """Deliver a message. May raise; callers treat failures as non-fatal."""
        ...


class LoggingNotificationDispatcher:
    """Development dispatcher: writes the notification to the log instead of delivering it."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    async def notify(self, user_id: str, title: str, body: str, metadata: Dict[str, Any]) -> None:
        self._logger.info(
            "notification_logged",
            extra={"user_id": user_id, "title": title, "body": body, "metadata": metadata},
        )


class AccessNotifier:
    """Composes access-request notifications. Never raises; returns the dispatch outcome."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        logger: Optional[logging.Logger] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._logger = logger or logging.getLogger(__name__)
        self._metrics = metrics

    async def _send(
        self,
        user_id: str,
        title: str,
        body: str,
        metadata: Dict[str, Any],
    ) -> SideEffectOutcome:
        try:
            await self._dispatcher.notify(user_id, title, body, metadata)
        except Exception as e:
            self._logger.error(
                "notification_failed",
                extra={"user_id": user_id, "title": title, "error": str(e)},
            )
            if self._metrics:
                self._metrics.increment("notification_failed", category=title)
            return SideEffectOutcome.failed("notification", e)
        return SideEffectOutcome.ok("notification")

    async def approval_requested(
        self,
        request: AccessRequest,
        repository: Repository,
        requester: Optional[User],
        recipient_id: str,
    ) -> SideEffectOutcome:
        requester_name = requester.display_name if requester else request.requester_id
        return await self._send(
            recipient_id,
            "Access Approval Request",
            f"{requester_name} requested access to {repository.name}",
            {
                "request_id": request.id,
                "requester_name": requester_name,
                "repository_name": repository.name,
                "reason": request.reason,
                "deep_link": f"{DEEP_LINK_SCHEME}approvals/{request.id}",
            },
        )

    async def access_approved(
        self,
        request: AccessRequest,
        repository: Repository,
        approver: Optional[User],
    ) -> SideEffectOutcome:
        approver_name = approver.display_name if approver else "System"
        return await self._send(
            request.requester_id,
            "Access Request Approved",
            f"Your access request for {repository.name} has been approved by {approver_name}",
            {
                "request_id": request.id,
                "repository_name": repository.name,
                "approver_name": approver_name,
                "deep_link": f"{DEEP_LINK_SCHEME}repositories/{repository.id}",
            },
        )

    async def access_rejected(
        self,
        request: AccessRequest,
        repository: Repository,
        rejector: Optional[User],
    ) -> SideEffectOutcome:
        rejector_name = rejector.display_name if rejector else "System"
        return await self._send(
            request.requester_id,
            "Access Request Rejected",
            f"Your access request for {repository.name} has been rejected by {rejector_name}",
            {
                "request_id": request.id,
                "repository_name": repository.name,
                "approver_name": rejector_name,
                "reason": request.rejection_reason,
            },
        )
