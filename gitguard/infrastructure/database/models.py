# gitguard/infrastructure/database/models.py

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from gitguard.infrastructure.database.session import Base

JsonType = JSON().with_variant(JSONB(), "postgresql")

_PENDING = text("status = 'PENDING'")


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class UserRow(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String, nullable=False, unique=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    biometric_enabled = Column(Boolean, nullable=False, default=False)
    biometric_token = Column(Text, nullable=True)
    push_token = Column(String, nullable=True)


class OrganizationRow(TimestampMixin, Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)


class RepositoryRow(TimestampMixin, Base):
    __tablename__ = "repositories"

    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    git_provider = Column(String, nullable=True)
    git_repo_url = Column(String, nullable=True)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)


class RoleRow(TimestampMixin, Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True)
    key = Column(String, nullable=False)
    name = Column(String, nullable=False)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    actions = Column(JsonType, nullable=False, default=list)  # ordered


class RoleAssignmentRow(Base):
    """Insert-only grant."""

    __tablename__ = "role_assignments"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    role_id = Column(String(36), ForeignKey("roles.id"), nullable=False)
    repository_id = Column(String(36), ForeignKey("repositories.id"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_role_assignments_user_repo", "user_id", "repository_id"),)


class AccessRequestRow(Base):
    __tablename__ = "access_requests"

    id = Column(String(36), primary_key=True)
    requester_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    repository_id = Column(String(36), ForeignKey("repositories.id"), nullable=False)
    role_id = Column(String(36), ForeignKey("roles.id"), nullable=True)
    requested_actions = Column(JsonType, nullable=False, default=list)
    reason = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="PENDING", index=True)
    requires_multi_approval = Column(Boolean, nullable=False, default=False)
    approval_count = Column(Integer, nullable=False, default=0)
    approved_by = Column(JsonType, nullable=False, default=list)
    approver_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    expired_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    approvers = relationship(
        "AccessRequestApproverRow",
        order_by="AccessRequestApproverRow.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("approval_count >= 0", name="ck_access_requests_approval_count"),
        # At most one PENDING request per (requester, repository).
        Index(
            "uq_access_requests_pending",
            "requester_id",
            "repository_id",
            unique=True,
            postgresql_where=_PENDING,
            sqlite_where=_PENDING,
        ),
    )


class AccessRequestApproverRow(Base):
    """Designated approver of one request. Fixed at creation."""

    __tablename__ = "access_request_approvers"

    request_id = Column(
        String(36),
        ForeignKey("access_requests.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(String(36), primary_key=True, index=True)
    position = Column(Integer, nullable=False, default=0)


class AuditLogRow(Base):
    """Append-only. Repositories never issue UPDATE or DELETE against this table."""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)
    action = Column(String, nullable=False, index=True)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=False)
    actor_id = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    metadata_ = Column("metadata", JsonType, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (Index("ix_audit_logs_entity", "entity_type", "entity_id"),)
