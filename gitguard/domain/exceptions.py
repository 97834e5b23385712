"""Domain-specific exceptions. Pure domain layer. No infrastructure."""

from gitguard.core.exceptions import GitGuardError


class DomainError(GitGuardError):
    """Base for all domain-layer errors."""

    kind = "domain"
    status_code = 400


class ValidationError(DomainError):
    """Raised when input violates a domain rule (e.g. neither role nor actions supplied)."""

    kind = "validation"
    status_code = 400


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    kind = "not_found"
    status_code = 404


class ConflictError(DomainError):
    """Raised on duplicate pending requests or when operating on a terminal request."""

    kind = "conflict"
    status_code = 409


class InvalidStatusTransitionError(ConflictError):
    """Raised when an access request status transition is not allowed."""
