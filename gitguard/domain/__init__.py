"""Domain layer: models, schemas, validators, exceptions. Pure business logic only."""

from gitguard.domain.exceptions import (
    ConflictError,
    DomainError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from gitguard.domain.models import AccessRequest, AccessRequestStatus

__all__ = [
    "AccessRequest",
    "AccessRequestStatus",
    "ConflictError",
    "DomainError",
    "InvalidStatusTransitionError",
    "NotFoundError",
    "ValidationError",
]
