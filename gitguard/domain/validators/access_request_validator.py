"""Validators for access request rules. Pure functions, no infrastructure or DB access."""

from typing import Iterable, Optional, Tuple

from gitguard.domain.exceptions import ValidationError


def normalize_actions(actions: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Strip blanks and duplicates, keeping first-seen order."""
    if not actions:
        return ()
    seen: dict[str, None] = {}
    for action in actions:
        if action is None:
            continue
        cleaned = action.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


def validate_access_target(role_id: Optional[str], actions: Tuple[str, ...]) -> None:
    """Exactly one of a role reference or a non-empty action list. Raises ValidationError otherwise."""
    if role_id and actions:
        raise ValidationError("Provide either roleId or requestedActions, not both")
    if not role_id and not actions:
        raise ValidationError("Either roleId or requestedActions must be provided")


def validate_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise ValidationError("reason must not be empty")
    return reason.strip()


def normalize_approver_ids(approver_ids: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Deduplicated approver ids, first-seen order."""
    return normalize_actions(approver_ids)
