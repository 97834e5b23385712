"""Pydantic schemas for the access request API. Strict validation, no DB or infrastructure."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from gitguard.domain.models.access_request import AccessRequest, AccessRequestStatus

RequestType = Literal["pending", "approved", "rejected", "all"]
CallerRole = Literal["requester", "approver"]


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class AccessRequestCreate(BaseModel):
    """Body of POST /access-requests. Role-vs-actions exclusivity is a domain rule, checked by the registry."""

    model_config = ConfigDict(populate_by_name=True)

    repository_id: str = Field(..., min_length=1, alias="repositoryId")
    role_id: Optional[str] = Field(None, alias="roleId")
    requested_actions: Optional[List[str]] = Field(None, alias="requestedActions")
    reason: str = Field(..., min_length=1)
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    requires_multi_approval: bool = Field(False, alias="requiresMultiApproval")
    approver_ids: Optional[List[str]] = Field(None, alias="approverIds")


class ApproveBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    biometric_token: str = Field(..., min_length=1, alias="biometricToken")


class RejectBody(BaseModel):
    reason: Optional[str] = Field(None, min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class AccessRequestResponse(BaseModel):
    id: str
    requester_id: str
    repository_id: str
    role_id: Optional[str] = None
    requested_actions: List[str]
    reason: str
    status: AccessRequestStatus
    approver_ids: List[str]
    requires_multi_approval: bool
    approval_count: int
    required_approvals: int
    approver_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, request: AccessRequest) -> "AccessRequestResponse":
        return cls(
            id=request.id,
            requester_id=request.requester_id,
            repository_id=request.repository_id,
            role_id=request.role_id,
            requested_actions=list(request.requested_actions),
            reason=request.reason,
            status=request.status,
            approver_ids=list(request.approver_ids),
            requires_multi_approval=request.requires_multi_approval,
            approval_count=request.approval_count,
            required_approvals=request.required_approvals,
            approver_id=request.approver_id,
            approved_at=request.approved_at,
            rejected_at=request.rejected_at,
            expired_at=request.expired_at,
            rejection_reason=request.rejection_reason,
            expires_at=request.expires_at,
            created_at=request.created_at,
        )


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def of(cls, page) -> "Pagination":
        """Build from a governance Page (anything with total, page, limit and pages)."""
        return cls(total=page.total, page=page.page, limit=page.limit, pages=page.pages)


class AccessRequestPage(BaseModel):
    access_requests: List[AccessRequestResponse]
    pagination: Pagination


class ApprovalResponse(BaseModel):
    message: str
    approval_count: int
    required_approvals: int
    finalized: bool
    access_request: AccessRequestResponse
