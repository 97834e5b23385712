"""DB-backed directory: users, organizations, repositories and roles."""

from typing import List, Optional

from sqlalchemy import select

from gitguard.domain.models import Organization, Repository, Role, User
from gitguard.infrastructure.database.mapping import (
    repository_from_row,
    role_from_row,
    user_from_row,
)
from gitguard.infrastructure.database.models import (
    OrganizationRow,
    RepositoryRow,
    RoleRow,
    UserRow,
)
from gitguard.infrastructure.database.session import Database


class DbDirectoryRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._db.session() as session:
            row = await session.get(UserRow, user_id)
            return user_from_row(row) if row is not None else None

    async def save_user(self, user: User) -> None:
        async with self._db.session() as session:
            await session.merge(
                UserRow(
                    id=user.id,
                    email=user.email,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    biometric_enabled=user.biometric_enabled,
                    biometric_token=user.biometric_token,
                    push_token=user.push_token,
                )
            )
            await session.commit()

    async def save_organization(self, organization: Organization) -> None:
        async with self._db.session() as session:
            await session.merge(OrganizationRow(id=organization.id, name=organization.name))
            await session.commit()

    async def get_repository(self, repository_id: str) -> Optional[Repository]:
        async with self._db.session() as session:
            row = await session.get(RepositoryRow, repository_id)
            return repository_from_row(row) if row is not None else None

    async def save_repository(self, repository: Repository) -> None:
        async with self._db.session() as session:
            await session.merge(
                RepositoryRow(
                    id=repository.id,
                    name=repository.name,
                    description=repository.description,
                    git_provider=repository.git_provider,
                    git_repo_url=repository.git_repo_url,
                    organization_id=repository.organization_id,
                    owner_id=repository.owner_id,
                )
            )
            await session.commit()

    async def get_role(self, role_id: str) -> Optional[Role]:
        async with self._db.session() as session:
            row = await session.get(RoleRow, role_id)
            return role_from_row(row) if row is not None else None

    async def save_role(self, role: Role) -> None:
        async with self._db.session() as session:
            await session.merge(
                RoleRow(
                    id=role.id,
                    key=role.key,
                    name=role.name,
                    organization_id=role.organization_id,
                    actions=list(role.actions),
                )
            )
            await session.commit()

    async def repository_ids_owned_by(self, user_id: str) -> List[str]:
        stmt = select(RepositoryRow.id).where(RepositoryRow.owner_id == user_id)
        async with self._db.session() as session:
            return list((await session.execute(stmt)).scalars().all())
