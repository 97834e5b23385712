"""DB-backed access request repository. Row locks make each transition atomic across processes."""

from datetime import datetime
from typing import Collection, List, Optional, Tuple

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.exc import IntegrityError

from gitguard.domain.exceptions import ConflictError, NotFoundError
from gitguard.domain.models import AccessRequest, AccessRequestStatus
from gitguard.governance.repositories import AccessRequestQuery, Transition
from gitguard.infrastructure.database.mapping import (
    access_request_from_row,
    access_request_to_row,
    apply_state,
)
from gitguard.infrastructure.database.models import AccessRequestApproverRow, AccessRequestRow
from gitguard.infrastructure.database.session import Database

_PENDING = AccessRequestStatus.PENDING.value


class DbAccessRequestRepository:
    """Implements AccessRequestRepository over the access_requests table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def add(self, request: AccessRequest) -> None:
        try:
            async with self._db.session() as session:
                session.add(access_request_to_row(request))
                await session.commit()
        except IntegrityError as exc:
            # Only the pending-uniqueness index is a conflict; other violations propagate.
            if (
                request.status == AccessRequestStatus.PENDING
                and await self.find_pending(request.requester_id, request.repository_id) is not None
            ):
                raise ConflictError(
                    "You already have a pending access request for this repository"
                ) from exc
            raise

    async def get(self, request_id: str) -> Optional[AccessRequest]:
        async with self._db.session() as session:
            row = await session.get(AccessRequestRow, request_id)
            return access_request_from_row(row) if row is not None else None

    async def find_pending(self, requester_id: str, repository_id: str) -> Optional[AccessRequest]:
        stmt = select(AccessRequestRow).where(
            AccessRequestRow.requester_id == requester_id,
            AccessRequestRow.repository_id == repository_id,
            AccessRequestRow.status == _PENDING,
        )
        async with self._db.session() as session:
            row = (await session.execute(stmt)).scalars().first()
            return access_request_from_row(row) if row is not None else None

    def _conditions(self, query: AccessRequestQuery, owned_repository_ids: Collection[str]) -> list:
        conditions = []
        status = query.effective_status
        if status is not None:
            conditions.append(AccessRequestRow.status == status.value)
        if query.caller_role == "requester":
            conditions.append(AccessRequestRow.requester_id == query.caller_id)
        elif query.caller_role == "approver":
            designated = exists().where(
                AccessRequestApproverRow.request_id == AccessRequestRow.id,
                AccessRequestApproverRow.user_id == query.caller_id,
            )
            branches = [AccessRequestRow.approver_id == query.caller_id, designated]
            if owned_repository_ids:
                branches.append(
                    and_(
                        AccessRequestRow.status == _PENDING,
                        AccessRequestRow.repository_id.in_(list(owned_repository_ids)),
                    )
                )
            conditions.append(or_(*branches))
        return conditions

    async def list(
        self,
        query: AccessRequestQuery,
        owned_repository_ids: Collection[str] = (),
    ) -> Tuple[List[AccessRequest], int]:
        conditions = self._conditions(query, owned_repository_ids)
        count_stmt = select(func.count()).select_from(AccessRequestRow)
        page_stmt = select(AccessRequestRow)
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            page_stmt = page_stmt.where(and_(*conditions))
        page_stmt = (
            page_stmt.order_by(AccessRequestRow.created_at.desc())
            .offset(query.offset)
            .limit(query.limit)
        )
        async with self._db.session() as session:
            total = await session.scalar(count_stmt)
            rows = (await session.execute(page_stmt)).scalars().all()
            return [access_request_from_row(r) for r in rows], int(total or 0)

    async def list_overdue(self, now: datetime) -> List[AccessRequest]:
        stmt = select(AccessRequestRow).where(
            AccessRequestRow.status == _PENDING,
            AccessRequestRow.expires_at.is_not(None),
            AccessRequestRow.expires_at <= now,
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [access_request_from_row(r) for r in rows]

    async def transition(self, request_id: str, fn: Transition) -> AccessRequest:
        stmt = (
            select(AccessRequestRow)
            .where(AccessRequestRow.id == request_id)
            .with_for_update()
        )
        async with self._db.session() as session:
            async with session.begin():
                row = (await session.execute(stmt)).scalar_one_or_none()
                if row is None:
                    raise NotFoundError("Access request not found")
                updated = fn(access_request_from_row(row))
                apply_state(row, updated)
            return updated
