"""Audit trail API: filtered, paginated reads. No write or delete endpoints."""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from gitguard.api.dependencies import get_container
from gitguard.container import ServiceContainer
from gitguard.domain.schemas.access_request import Pagination
from gitguard.domain.schemas.audit_log import AuditLogPage, AuditLogResponse
from gitguard.governance.audit_models import DEFAULT_PAGE_SIZE, AuditLogQuery
from gitguard.governance.pagination import Page

router = APIRouter()


def _page(result: Page) -> AuditLogPage:
    return AuditLogPage(
        audit_logs=[AuditLogResponse.from_domain(e) for e in result.items],
        pagination=Pagination.of(result),
    )


@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    container: Annotated[ServiceContainer, Depends(get_container)],
    user_id: Annotated[Optional[str], Query(alias="userId")] = None,
    entity_type: Annotated[Optional[str], Query(alias="entityType")] = None,
    entity_id: Annotated[Optional[str], Query(alias="entityId")] = None,
    action: Optional[str] = None,
    from_date: Annotated[Optional[datetime], Query(alias="fromDate")] = None,
    to_date: Annotated[Optional[datetime], Query(alias="toDate")] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
):
    query = AuditLogQuery(
        actor_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        from_date=from_date,
        to_date=to_date,
        page=page,
        limit=limit,
    )
    return _page(await container.audit_logger.query(query))


@router.get("/actions/list")
async def list_actions(container: Annotated[ServiceContainer, Depends(get_container)]):
    return {"actions": await container.audit_logger.list_actions()}


@router.get("/entity-types/list")
async def list_entity_types(container: Annotated[ServiceContainer, Depends(get_container)]):
    return {"entity_types": await container.audit_logger.list_entity_types()}


@router.get("/entity/{entity_type}/{entity_id}", response_model=AuditLogPage)
async def entity_history(
    entity_type: str,
    entity_id: str,
    container: Annotated[ServiceContainer, Depends(get_container)],
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
):
    query = AuditLogQuery(entity_type=entity_type, entity_id=entity_id, page=page, limit=limit)
    return _page(await container.audit_logger.query(query))


@router.get("/user/{user_id}", response_model=AuditLogPage)
async def user_history(
    user_id: str,
    container: Annotated[ServiceContainer, Depends(get_container)],
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
):
    query = AuditLogQuery(actor_id=user_id, page=page, limit=limit)
    return _page(await container.audit_logger.query(query))


@router.get("/{entry_id}", response_model=AuditLogResponse)
async def get_audit_log(
    entry_id: str,
    container: Annotated[ServiceContainer, Depends(get_container)],
):
    return AuditLogResponse.from_domain(await container.audit_logger.get(entry_id))
