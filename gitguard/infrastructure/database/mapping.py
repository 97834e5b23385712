"""Row <-> domain conversion. SQLite drops tzinfo on read; every datetime comes back as UTC."""

from gitguard.core.timeutil import as_utc
from gitguard.domain.models import (
    AccessRequest,
    AccessRequestStatus,
    Repository,
    Role,
    RoleAssignment,
    User,
)
from gitguard.governance.audit_models import AuditLogEntry, ClientContext
from gitguard.infrastructure.database.models import (
    AccessRequestApproverRow,
    AccessRequestRow,
    AuditLogRow,
    RepositoryRow,
    RoleAssignmentRow,
    RoleRow,
    UserRow,
)


def user_from_row(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        biometric_enabled=bool(row.biometric_enabled),
        biometric_token=row.biometric_token,
        push_token=row.push_token,
    )


def repository_from_row(row: RepositoryRow) -> Repository:
    return Repository(
        id=row.id,
        name=row.name,
        organization_id=row.organization_id,
        owner_id=row.owner_id,
        description=row.description,
        git_provider=row.git_provider,
        git_repo_url=row.git_repo_url,
    )


def role_from_row(row: RoleRow) -> Role:
    return Role(
        id=row.id,
        key=row.key,
        name=row.name,
        organization_id=row.organization_id,
        actions=tuple(row.actions or ()),
    )


def assignment_from_row(row: RoleAssignmentRow) -> RoleAssignment:
    return RoleAssignment(
        id=row.id,
        user_id=row.user_id,
        role_id=row.role_id,
        repository_id=row.repository_id,
        created_at=as_utc(row.created_at),
        expires_at=as_utc(row.expires_at),
    )


def access_request_from_row(row: AccessRequestRow) -> AccessRequest:
    return AccessRequest(
        id=row.id,
        requester_id=row.requester_id,
        repository_id=row.repository_id,
        reason=row.reason,
        created_at=as_utc(row.created_at),
        role_id=row.role_id,
        requested_actions=tuple(row.requested_actions or ()),
        status=AccessRequestStatus(row.status),
        approver_ids=tuple(a.user_id for a in row.approvers),
        requires_multi_approval=bool(row.requires_multi_approval),
        approval_count=row.approval_count,
        approved_by=tuple(row.approved_by or ()),
        approver_id=row.approver_id,
        approved_at=as_utc(row.approved_at),
        rejected_at=as_utc(row.rejected_at),
        expired_at=as_utc(row.expired_at),
        rejection_reason=row.rejection_reason,
        expires_at=as_utc(row.expires_at),
        updated_at=as_utc(row.updated_at),
    )


def access_request_to_row(request: AccessRequest) -> AccessRequestRow:
    row = AccessRequestRow(
        id=request.id,
        requester_id=request.requester_id,
        repository_id=request.repository_id,
        role_id=request.role_id,
        reason=request.reason,
        created_at=request.created_at,
        requires_multi_approval=request.requires_multi_approval,
        expires_at=request.expires_at,
        approvers=[
            AccessRequestApproverRow(request_id=request.id, user_id=user_id, position=i)
            for i, user_id in enumerate(request.approver_ids)
        ],
    )
    apply_state(row, request)
    return row


def apply_state(row: AccessRequestRow, request: AccessRequest) -> None:
    """Copy the mutable lifecycle columns. Identity, target and approver set never change."""
    row.requested_actions = list(request.requested_actions)
    row.status = request.status.value
    row.approval_count = request.approval_count
    row.approved_by = list(request.approved_by)
    row.approver_id = request.approver_id
    row.approved_at = request.approved_at
    row.rejected_at = request.rejected_at
    row.expired_at = request.expired_at
    row.rejection_reason = request.rejection_reason
    row.updated_at = request.updated_at


def audit_entry_from_row(row: AuditLogRow) -> AuditLogEntry:
    client = None
    if row.ip_address is not None or row.user_agent is not None:
        client = ClientContext(ip_address=row.ip_address, user_agent=row.user_agent)
    return AuditLogEntry(
        id=row.id,
        action=row.action,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        actor_id=row.actor_id,
        description=row.description,
        created_at=as_utc(row.created_at),
        metadata=row.metadata_,
        client=client,
    )


def audit_entry_to_row(entry: AuditLogEntry) -> AuditLogRow:
    return AuditLogRow(
        id=entry.id,
        action=entry.action,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        actor_id=entry.actor_id,
        description=entry.description,
        metadata_=entry.metadata,
        ip_address=entry.client.ip_address if entry.client else None,
        user_agent=entry.client.user_agent if entry.client else None,
        created_at=entry.created_at,
    )
