"""Domain validators for the creation contract."""

import pytest

from gitguard.domain.exceptions import ValidationError
from gitguard.domain.validators import (
    normalize_actions,
    normalize_approver_ids,
    validate_access_target,
    validate_reason,
)


def test_normalize_actions_strips_and_dedupes_in_order():
    assert normalize_actions([" push", "view", "push", "", "  "]) == ("push", "view")
    assert normalize_actions(None) == ()


def test_normalize_approver_ids_dedupes():
    assert normalize_approver_ids(["a", "b", "a"]) == ("a", "b")


def test_access_target_requires_exactly_one_of_role_or_actions():
    validate_access_target("role-1", ())
    validate_access_target(None, ("view",))
    with pytest.raises(ValidationError, match="Either roleId or requestedActions"):
        validate_access_target(None, ())
    with pytest.raises(ValidationError, match="not both"):
        validate_access_target("role-1", ("view",))


def test_reason_must_not_be_blank():
    assert validate_reason("  ship it  ") == "ship it"
    with pytest.raises(ValidationError):
        validate_reason("   ")
    with pytest.raises(ValidationError):
        validate_reason(None)
