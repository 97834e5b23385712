"""Domain validators. Pure validation functions."""

from gitguard.domain.validators.access_request_validator import (
    normalize_actions,
    normalize_approver_ids,
    validate_access_target,
    validate_reason,
)

__all__ = [
    "normalize_actions",
    "normalize_approver_ids",
    "validate_access_target",
    "validate_reason",
]
