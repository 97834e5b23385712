"""In-process policy engine: idempotent provisioning, scoped bindings, fail-closed checks."""

import pytest

from gitguard.application.authorization_oracle import (
    DEFAULT_ROLES,
    REPOSITORY_ACTIONS,
    bootstrap_oracle,
    sanitize_resource_key,
)
from gitguard.application.exceptions import ExternalServiceError
from gitguard.security.rbac import InProcessPolicyEngine


@pytest.fixture
async def engine():
    e = InProcessPolicyEngine()
    await bootstrap_oracle(e)
    return e


async def test_bootstrap_is_idempotent(engine):
    await bootstrap_oracle(engine)
    assert set(engine._roles) == set(DEFAULT_ROLES)
    assert engine._resources["repository"] == REPOSITORY_ACTIONS


async def test_binding_is_scoped_to_resource_instance(engine):
    await engine.bind_role("u-1", "contributor", "repository", "repo-1")

    assert await engine.check("u-1", "push", "repository", "repo-1")
    assert not await engine.check("u-1", "push", "repository", "repo-2")
    assert not await engine.check("u-1", "delete", "repository", "repo-1")
    assert not await engine.check("u-2", "view", "repository", "repo-1")
    # Type-level check: any bound instance counts.
    assert await engine.check("u-1", "clone", "repository")


async def test_admin_implies_every_action(engine):
    await engine.bind_role("u-1", "admin", "repository", "repo-1")
    for action in REPOSITORY_ACTIONS:
        assert await engine.check("u-1", action, "repository", "repo-1")


async def test_unbind_revokes(engine):
    await engine.bind_role("u-1", "viewer", "repository", "repo-1")
    await engine.unbind_role("u-1", "viewer", "repository", "repo-1")
    assert not await engine.check("u-1", "view", "repository", "repo-1")
    assert engine.bindings_for("u-1") == frozenset()


async def test_binding_unknown_role_fails(engine):
    with pytest.raises(ExternalServiceError):
        await engine.bind_role("u-1", "maintainer", "repository", "repo-1")


def test_sanitize_resource_key():
    assert sanitize_resource_key("repository:repo-1") == "repository_repo-1"
    assert sanitize_resource_key("a b/c") == "a_b_c"
    assert sanitize_resource_key("ok_key-1") == "ok_key-1"
