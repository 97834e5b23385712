"""DB-backed audit repository. Append-only: INSERT and SELECT, never UPDATE or DELETE."""

from typing import List, Optional, Tuple

from sqlalchemy import and_, func, select

from gitguard.governance.audit_models import AuditLogEntry, AuditLogQuery
from gitguard.infrastructure.database.mapping import audit_entry_from_row, audit_entry_to_row
from gitguard.infrastructure.database.models import AuditLogRow
from gitguard.infrastructure.database.session import Database


class DbAuditRepository:
    """Implements AuditRepository over the audit_logs table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def append(self, entry: AuditLogEntry) -> None:
        async with self._db.session() as session:
            session.add(audit_entry_to_row(entry))
            await session.commit()

    async def get(self, entry_id: str) -> Optional[AuditLogEntry]:
        async with self._db.session() as session:
            row = await session.get(AuditLogRow, entry_id)
            return audit_entry_from_row(row) if row is not None else None

    async def query(self, query: AuditLogQuery) -> Tuple[List[AuditLogEntry], int]:
        conditions = []
        if query.actor_id is not None:
            conditions.append(AuditLogRow.actor_id == query.actor_id)
        if query.entity_type is not None:
            conditions.append(AuditLogRow.entity_type == query.entity_type)
        if query.entity_id is not None:
            conditions.append(AuditLogRow.entity_id == query.entity_id)
        if query.action is not None:
            conditions.append(AuditLogRow.action == query.action)
        if query.from_date is not None:
            conditions.append(AuditLogRow.created_at >= query.from_date)
        if query.to_date is not None:
            conditions.append(AuditLogRow.created_at <= query.to_date)

        count_stmt = select(func.count()).select_from(AuditLogRow)
        page_stmt = select(AuditLogRow)
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            page_stmt = page_stmt.where(and_(*conditions))
        page_stmt = (
            page_stmt.order_by(AuditLogRow.created_at.desc())
            .offset(query.offset)
            .limit(query.limit)
        )
        async with self._db.session() as session:
            total = await session.scalar(count_stmt)
            rows = (await session.execute(page_stmt)).scalars().all()
            return [audit_entry_from_row(r) for r in rows], int(total or 0)

    async def distinct_actions(self) -> List[str]:
        return await self._distinct(AuditLogRow.action)

    async def distinct_entity_types(self) -> List[str]:
        return await self._distinct(AuditLogRow.entity_type)

    async def _distinct(self, column) -> List[str]:
        stmt = select(column).distinct().order_by(column)
        async with self._db.session() as session:
            return list((await session.execute(stmt)).scalars().all())
