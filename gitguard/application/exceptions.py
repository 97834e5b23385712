"""Application-layer exceptions. Do not reuse domain exceptions."""

from gitguard.core.exceptions import GitGuardError


class ApplicationError(GitGuardError):
    """Base for all application-layer errors."""


class ExternalServiceError(ApplicationError):
    """Raised when the oracle, notification broker or email delivery fails. Local state remains authoritative."""

    kind = "external_service"
    status_code = 502
