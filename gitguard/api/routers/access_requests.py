"""Access requests API: create, list, read, approve, reject."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from gitguard.api.dependencies import get_actor_id, get_client_context, get_container
from gitguard.container import ServiceContainer
from gitguard.domain.models import AccessRequestStatus
from gitguard.domain.schemas.access_request import (
    AccessRequestCreate,
    AccessRequestPage,
    AccessRequestResponse,
    ApprovalResponse,
    ApproveBody,
    CallerRole,
    Pagination,
    RejectBody,
    RequestType,
)
from gitguard.governance.audit_models import ClientContext
from gitguard.governance.repositories import DEFAULT_PAGE_SIZE, AccessRequestQuery

router = APIRouter()


@router.post("", status_code=201, response_model=AccessRequestResponse)
async def create_access_request(
    body: AccessRequestCreate,
    actor_id: Annotated[str, Depends(get_actor_id)],
    client: Annotated[ClientContext, Depends(get_client_context)],
    container: Annotated[ServiceContainer, Depends(get_container)],
):
    """Create a PENDING request; the caller is the requester."""
    request = await container.registry.create(
        requester_id=actor_id,
        repository_id=body.repository_id,
        reason=body.reason,
        role_id=body.role_id,
        actions=body.requested_actions,
        approver_ids=body.approver_ids,
        requires_multi_approval=body.requires_multi_approval,
        expires_at=body.expires_at,
        client=client,
    )
    return AccessRequestResponse.from_domain(request)


@router.get("", response_model=AccessRequestPage)
async def list_access_requests(
    actor_id: Annotated[str, Depends(get_actor_id)],
    container: Annotated[ServiceContainer, Depends(get_container)],
    status: Optional[AccessRequestStatus] = None,
    request_type: Annotated[Optional[RequestType], Query(alias="type")] = None,
    role: Optional[CallerRole] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
):
    query = AccessRequestQuery(
        caller_id=actor_id,
        status=status,
        request_type=request_type,
        caller_role=role,
        page=page,
        limit=limit,
    )
    result = await container.registry.list(query)
    return AccessRequestPage(
        access_requests=[AccessRequestResponse.from_domain(r) for r in result.items],
        pagination=Pagination.of(result),
    )


@router.get("/{request_id}", response_model=AccessRequestResponse)
async def get_access_request(
    request_id: str,
    actor_id: Annotated[str, Depends(get_actor_id)],
    container: Annotated[ServiceContainer, Depends(get_container)],
):
    request = await container.registry.get_for_viewer(request_id, actor_id)
    return AccessRequestResponse.from_domain(request)


@router.post("/{request_id}/approve", response_model=ApprovalResponse)
async def approve_access_request(
    request_id: str,
    body: ApproveBody,
    actor_id: Annotated[str, Depends(get_actor_id)],
    client: Annotated[ClientContext, Depends(get_client_context)],
    container: Annotated[ServiceContainer, Depends(get_container)],
):
    """Record one biometric-verified approval; finalizes once quorum is reached."""
    result = await container.quorum.approve(
        request_id, actor_id, body.biometric_token, client=client
    )
    return ApprovalResponse(
        message=result.message,
        approval_count=result.approval_count,
        required_approvals=result.required_approvals,
        finalized=result.finalized,
        access_request=AccessRequestResponse.from_domain(result.request),
    )


@router.post("/{request_id}/reject", response_model=AccessRequestResponse)
async def reject_access_request(
    request_id: str,
    actor_id: Annotated[str, Depends(get_actor_id)],
    client: Annotated[ClientContext, Depends(get_client_context)],
    container: Annotated[ServiceContainer, Depends(get_container)],
    body: Optional[RejectBody] = None,
):
    reason = body.reason if body else None
    rejected = await container.quorum.reject(request_id, actor_id, reason, client=client)
    return AccessRequestResponse.from_domain(rejected)
