"""Governance: access request lifecycle, approval quorum, role grants, audit trail. No FastAPI."""

from gitguard.governance.access_request_registry import AccessRequestRegistry
from gitguard.governance.approval_quorum import ApprovalQuorumCoordinator, ApprovalResult
from gitguard.governance.audit_logger import AuditLogger
from gitguard.governance.role_assignment_manager import RoleAssignmentManager

__all__ = [
    "AccessRequestRegistry",
    "ApprovalQuorumCoordinator",
    "ApprovalResult",
    "AuditLogger",
    "RoleAssignmentManager",
]
