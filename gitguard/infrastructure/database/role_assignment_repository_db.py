"""DB-backed role assignments. Insert-only."""

from typing import List

from sqlalchemy import select

from gitguard.domain.models import RoleAssignment
from gitguard.infrastructure.database.mapping import assignment_from_row
from gitguard.infrastructure.database.models import RoleAssignmentRow
from gitguard.infrastructure.database.session import Database


class DbRoleAssignmentRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def add(self, assignment: RoleAssignment) -> None:
        async with self._db.session() as session:
            session.add(
                RoleAssignmentRow(
                    id=assignment.id,
                    user_id=assignment.user_id,
                    role_id=assignment.role_id,
                    repository_id=assignment.repository_id,
                    created_at=assignment.created_at,
                    expires_at=assignment.expires_at,
                )
            )
            await session.commit()

    async def list_for(self, user_id: str, repository_id: str) -> List[RoleAssignment]:
        stmt = (
            select(RoleAssignmentRow)
            .where(
                RoleAssignmentRow.user_id == user_id,
                RoleAssignmentRow.repository_id == repository_id,
            )
            .order_by(RoleAssignmentRow.created_at)
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [assignment_from_row(r) for r in rows]
